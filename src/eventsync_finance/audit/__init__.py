"""
Audit - append-only record of privileged actions

Destructive actions (invalidating attendance, revoking certificates) demand
a written reason and are always recorded at CRITICAL severity.
"""
