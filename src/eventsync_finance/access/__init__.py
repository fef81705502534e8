"""
Access - event team membership and permissions

Server-side checks live in the ledger; PermissionGate is the cached,
client-side view of the same permission sets.
"""
