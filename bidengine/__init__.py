"""
bidengine - Bid validation and credit settlement for online auctions.

Decides, for every incoming bid, whether it is acceptable and how it
changes the sale and the bidder's credit:
- Price resolution from the bid history
- Delta credit reservation per sale
- Ordered, fail-fast bid rules
- Transactional, per-sale serialized placement
"""

__version__ = "0.1.0"
