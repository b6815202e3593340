"""Storefront: catalog, cart, wishlist and checkout."""
