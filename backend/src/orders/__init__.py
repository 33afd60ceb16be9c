"""Orders module for SecureShop API

Checkout, the order status state machine and the ownership guard that
mediates every read or write of an order.
"""
