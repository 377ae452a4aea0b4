"""auth/ -- Authentication and authorization package for the DevOps API.

Leaves first: models -> store -> credentials / tokens -> session -> policy.
dependencies.py is the only module that touches FastAPI.

Layer rule: auth/ does NOT import from api/ or metrics/.
api/ imports from auth/, not the other way around.
"""
