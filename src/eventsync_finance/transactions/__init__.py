"""
Transactions - per-event cash ledger

Money actually received (CREDIT) or paid out (DEBIT) for an event, in whole
cents. Entries are never edited; a mistake is undone by recording a REVERSAL
in the opposite direction.
"""
