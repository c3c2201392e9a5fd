"""auth/ -- Authentication and session-invalidation package for TokenGate.

Layer rule: auth/ imports only stdlib + third-party libraries (plus core/).
It does NOT import from api/ or files/.
api/ imports from auth/, not the other way around.
"""
