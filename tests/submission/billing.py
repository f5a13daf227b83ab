"""Billing module with deliberately misnamed classes."""


class Customer:
    name: str


class Orderline:
    quantity: int


class Invoise:
    number: str


class Address:
    street: str
