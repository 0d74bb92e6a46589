"""auth/ -- Authentication, authorization and the user directory.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/ or ledger/.
api/ and ledger/ import from auth/, not the other way around.
"""
