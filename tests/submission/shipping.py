"""Shipping module; ``Address`` is also defined in billing."""


class Address:
    city: str
