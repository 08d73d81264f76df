from fastapi import Request

from backoffice.services.pricing_service.price_resolver import PriceResolver


def get_price_resolver(request: Request) -> PriceResolver:
    """
    The application's single PriceResolver.

    Created on startup; created here instead when startup did not run
    (handlers mounted in another app, some test clients).
    """
    resolver = getattr(request.app.state, "price_resolver", None)
    if resolver is None:
        resolver = PriceResolver()
        request.app.state.price_resolver = resolver
    return resolver
