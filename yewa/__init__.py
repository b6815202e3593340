"""
Yewa — storefront + South African government tender browser

Packages:
    api/        Flask blueprints (shop, admin, tenders, proxies, shell)
    shop/       Cart reducer, wishlist, catalog, checkout
    tenders/    OCDS release fetch + search/filter/sort/paginate pipeline
    core/       Paths, secrets, persistence, auth, request guards
"""

__version__ = "1.4.0"
