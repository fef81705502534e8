"""
Budget - per-event budget lifecycle

Request, approval, amendment and close of the single budget every event
owns, with an append-only history derived from the budget's event stream.
"""
