"""orgs/ -- Organization persistence and default-workspace provisioning.

Layer rule: orgs/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or auth/. auth/ imports from orgs/, not the
other way around.
"""
