"""
Price resolution for a sale.

The binding price of a sale is its highest bid. Without bids it is the
settled sale price when one was recorded, otherwise the starting price.
"""

from typing import Optional

from bidengine.core.model import Bid, Sale


def highest_bid(sale: Sale) -> Optional[Bid]:
    """Leading bid of a sale, or None when it has no (loaded) bids."""
    if not sale.bids:
        return None
    return max(sale.bids, key=lambda b: b.bid_amount)


def current_price(sale: Sale) -> int:
    """
    Current binding price of a sale.

    Args:
        sale: Sale, ideally with its full bid history loaded. A sale whose
            bids were not fetched is priced like a sale without bids.

    Returns:
        Highest bid amount, else sale_price if positive, else starting_price

    Raises:
        ValueError: if sale is None
    """
    if sale is None:
        raise ValueError("Cannot price a missing sale")

    leader = highest_bid(sale)
    if leader is not None:
        return leader.bid_amount

    return sale.sale_price if sale.sale_price > 0 else sale.starting_price
