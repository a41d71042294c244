"""auth/ -- Authentication and authorization package for the accounts service.

Layer rule: auth/ imports only stdlib + third-party libraries (and fastapi in
dependencies.py). It does NOT import from api/ or core/; settings values are
passed in by whoever constructs the services. api/ imports from auth/, not the
other way around.
"""
