"""Online storefront service: catalog, cookie cart, orders and back office."""
