"""auth/ -- Token engine, session rotation and account checks for the admission portal.

Layer rule: auth/ imports only stdlib + third-party libraries, except for
auth/dependencies.py which is the FastAPI seam. It does NOT import from api/
or core/. api/ imports from auth/, not the other way around.
"""
