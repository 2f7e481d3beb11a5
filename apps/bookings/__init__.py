"""Bookings app package.

This app encapsulates the booking engine: billing-cycle expansion,
pricing, seat/locker conflict detection and the transactional ledger
that writes a payment and its per-cycle reservations in one commit.
Overlap is re-checked under a row lock inside the transaction, so two
concurrent bookings can never both hold the same resource.
"""
