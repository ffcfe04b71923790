"""auth/ -- Authentication and session package for the donation tracker.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or donations/.
api/ imports from auth/, not the other way around.
"""
