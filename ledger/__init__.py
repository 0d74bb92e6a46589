"""ledger/ -- Vehicle sale records: dataclasses, store, and scoped service.

Layer rule: ledger/ may import from auth/ (actors, permissions, the user
store for reference checks) and core/. It does NOT import from api/.
"""
