"""
Token authentication for the lab API.

Kept apart from the views so that DRF can import the authentication
class from settings without pulling in view modules.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token auth using the ``Token`` keyword.

    Being first in ``DEFAULT_AUTHENTICATION_CLASSES`` it also supplies the
    ``WWW-Authenticate`` header that turns missing credentials into 401
    rather than 403.
    """

    keyword = 'Token'
