import secrets

PRODUCT_PREFIX = "PROD"
CUSTOMER_PREFIX = "CUST"
ORDER_PREFIX = "ORD"
TRANSACTION_PREFIX = "TXN"


def generate_id(prefix: str, digits: int = 5) -> str:
    """
    Generate an entity identifier such as ``ORD48213``.

    The numeric part is random and always exactly ``digits`` long (it never
    starts with a zero). Collisions are possible but rare; the tables' primary
    keys reject them.

    Args:
        prefix: Entity prefix (``PROD``, ``CUST``, ``ORD``, ``TXN``)
        digits: Width of the numeric part

    Returns:
        The prefixed identifier
    """
    if digits < 1:
        raise ValueError("digits must be at least 1")
    low = 10 ** (digits - 1)
    high = 10 ** digits
    return f"{prefix}{low + secrets.randbelow(high - low)}"
