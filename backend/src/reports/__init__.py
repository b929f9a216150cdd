"""Batch mailbox reports (lottery, orders, shipping) and their CLI."""
