"""auth/ -- Credential and session-token lifecycle for the account service.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/ and
media/ types for annotations. It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
