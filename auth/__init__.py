"""auth/ -- Authentication, session tokens, and role-based authorization.

Layer rule: auth/ imports stdlib, third-party libraries, core/, and orgs/.
It does NOT import from api/. api/ imports from auth/, not the other way
around.
"""
