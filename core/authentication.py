from rest_framework.authentication import TokenAuthentication


class BearerTokenAuthentication(TokenAuthentication):
    """Accept ``Authorization: Bearer <token>`` as issued by the mobile and web clients."""

    keyword = "Bearer"
