"""
wishlist.py — Per-user wishlist

The `wishlist` table is the truth; `items` is a local copy of the product
ids used for display and is_in_wishlist() lookups. The copy is reloaded by
refresh() when the signed-in user changes, and is otherwise only touched after
a write to the table has succeeded. Between those points a stale read is
accepted.
"""

import logging

from yewa.core import db
from yewa.core.db import StoreError

log = logging.getLogger("yewa.wishlist")


class WishlistStore:

    def __init__(self, user, items=None, notify=None):
        self.user = user
        self.items = list(items or [])
        self._notify = notify or (lambda *a, **k: None)

    @classmethod
    def load(cls, user, notify=None) -> "WishlistStore":
        store = cls(user, notify=notify)
        store.refresh()
        return store

    def refresh(self) -> list:
        """Reload ids from the table (empty when signed out)."""
        if not self.user.is_authenticated:
            self.items = []
            return self.items
        try:
            self.items = db.wishlist_product_ids(self.user.user_id)
        except StoreError as e:
            log.error("Error fetching wishlist: %s", e, extra={"user": self.user.user_id})
        return self.items

    def add_to_wishlist(self, product_id: str) -> bool:
        if not self.user.is_authenticated:
            self._notify("Sign in required",
                         "Please sign in to add items to your wishlist", "destructive")
            return False
        try:
            db.wishlist_insert(self.user.user_id, product_id)
        except StoreError as e:
            log.warning("Wishlist insert failed: %s", e, extra={"user": self.user.user_id})
            self._notify("Error", "Failed to add to wishlist", "destructive")
            return False
        self.items = [*self.items, product_id]
        self._notify("Added to wishlist", "Item has been added to your wishlist")
        return True

    def remove_from_wishlist(self, product_id: str) -> bool:
        if not self.user.is_authenticated:
            return False
        try:
            db.wishlist_delete(self.user.user_id, product_id)
        except StoreError as e:
            log.warning("Wishlist delete failed: %s", e, extra={"user": self.user.user_id})
            self._notify("Error", "Failed to remove from wishlist", "destructive")
            return False
        self.items = [pid for pid in self.items if pid != product_id]
        self._notify("Removed from wishlist", "Item has been removed from your wishlist")
        return True

    def is_in_wishlist(self, product_id: str) -> bool:
        return product_id in self.items

    @property
    def count(self) -> int:
        return len(self.items)
