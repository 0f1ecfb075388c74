"""auth/ -- Authentication and authorization package for unidir.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/ or directory/.
api/ and directory/ import from auth/, not the other way around.
"""
