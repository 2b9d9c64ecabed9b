"""
Coupon boundary layer.

Responsibilities:
- Define explicit Coupon and StoreInfo records for data produced by the
  store/menu lookup.
- Parse the column/row menu payload and the coupon Tags metadata.
- Classify every coupon into exactly one deal category.
"""
