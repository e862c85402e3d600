"""auth/ -- Authentication and authorization package for DocKeep.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or documents/.
api/ and documents/ import from auth/, not the other way around.
"""
