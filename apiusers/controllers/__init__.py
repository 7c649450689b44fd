"""Request handling at the boundary with the API transport layer."""

from . import contact, forms, users
