"""Finances app package.

This app contains the payment record that funds a booking, promotion
coupons, invoice numbering and the coupon validation used when pricing
public bookings. Payment-gateway integrations stay outside this app;
only the provider name and order reference are stored.
"""
