"""media/ -- Local spooling and remote hosting of user images.

Layer rule: media/ does not import from api/ or auth/.
"""
