"""auth/ -- Accounts, credentials, sessions, and Google sign-in for Rollet.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or roster/.
api/ and roster/ import from auth/, not the other way around.
"""
