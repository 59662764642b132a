"""
Session-backed shopping cart.

Each row keeps a snapshot of the product as it was when added (id, name,
category, mrp, selling_price, image_url) plus a quantity. Prices are stored
as strings so the session stays JSON serializable.
"""
import logging
import uuid
from decimal import Decimal, InvalidOperation

from django.conf import settings

logger = logging.getLogger(__name__)

CART_SESSION_KEY = 'cart'


def product_snapshot(product):
    return {
        'id': str(product.id),
        'name': product.name,
        'category': product.category,
        'mrp': str(product.mrp),
        'selling_price': str(product.selling_price),
        'image_url': product.image_url,
    }


def _valid_row(row):
    if not isinstance(row, dict) or not isinstance(row.get('product'), dict):
        return False
    product = row['product']
    if not product.get('id') or not product.get('name'):
        return False
    try:
        uuid.UUID(str(product['id']))
        Decimal(str(product.get('selling_price')))
    except (InvalidOperation, TypeError, ValueError):
        return False
    quantity = row.get('quantity')
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0


class Cart:
    def __init__(self, request):
        self.session = request.session
        self.items = self._load()

    def _load(self):
        raw = self.session.get(CART_SESSION_KEY)
        if raw is None:
            return []
        if not isinstance(raw, dict) or not isinstance(raw.get('items'), list):
            logger.warning("Discarding corrupt cart in session")
            self.session.pop(CART_SESSION_KEY, None)
            return []

        items = [row for row in raw['items'] if _valid_row(row)]
        dropped = len(raw['items']) - len(items)
        if dropped:
            logger.warning("Dropped %d invalid cart rows", dropped)
            self.session[CART_SESSION_KEY] = {'items': items}
        return items

    def save(self):
        self.session[CART_SESSION_KEY] = {'items': self.items}
        self.session.modified = True

    def _find(self, product_id):
        product_id = str(product_id)
        for row in self.items:
            if row['product']['id'] == product_id:
                return row
        return None

    def __contains__(self, product_id):
        return self._find(product_id) is not None

    def __len__(self):
        return len(self.items)

    def add(self, product, quantity=1):
        row = self._find(product.id)
        if row is not None:
            row['quantity'] += quantity
        else:
            self.items.append({'product': product_snapshot(product), 'quantity': quantity})
        self.save()

    def update(self, product_id, quantity):
        """Set a row's quantity; zero or less removes it. False if absent."""
        row = self._find(product_id)
        if row is None:
            return False
        if quantity <= 0:
            self.items.remove(row)
        else:
            row['quantity'] = quantity
        self.save()
        return True

    def remove(self, product_id):
        row = self._find(product_id)
        if row is None:
            return False
        self.items.remove(row)
        self.save()
        return True

    def clear(self):
        self.items = []
        self.save()

    @property
    def total(self):
        return sum(
            (Decimal(row['product']['selling_price']) * row['quantity'] for row in self.items),
            Decimal('0.00'),
        )

    @property
    def item_count(self):
        return sum(row['quantity'] for row in self.items)

    @property
    def min_order_value(self):
        return settings.XSTORE_MIN_ORDER_VALUE

    @property
    def shortfall(self):
        return max(Decimal('0.00'), self.min_order_value - self.total)

    @property
    def can_checkout(self):
        return bool(self.items) and self.shortfall == 0

    def as_dict(self):
        return {
            'items': self.items,
            'total': self.total,
            'item_count': self.item_count,
            'min_order_value': self.min_order_value,
            'shortfall': self.shortfall,
            'can_checkout': self.can_checkout,
        }
