"""Notifications app package.

Delivers booking receipts and the welcome email for students registered
by the public booking form. Both are dispatched after the transaction
commits and are sent asynchronously through Celery, so a mail failure
never affects committed work.
"""
