"""Libraries app package.

Holds the catalogue the booking engine reads from: libraries, their
branches, the seats and lockers at each branch, and the plans and
additional fees offered either per branch or library-wide.
"""
