"""Students app package.

Students are the requesters of seat and locker bookings. The app also
resolves anonymous contact details to a student record for the public
self-service booking flow.
"""
