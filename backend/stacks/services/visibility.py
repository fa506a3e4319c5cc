"""Deal visibility and ranking.

Pure functions over already-loaded deals: which deals a user may see for a
set of merchant categories, and in what order. ``DealService`` loads one
snapshot of deals and hands it here, so the whole filter/sort pipeline runs
without touching the database.
"""

from typing import AbstractSet, Iterable, List, Optional, Protocol, Sequence

from stacks.core.exceptions import InvalidQueryError, MissingFilterError
from stacks.schemas.deal import Coordinate, DealSearchParams

SEARCH_PARAMS = ("category", "lat", "lng")


class _Located(Protocol):
    lat: float
    lng: float


def manhattan_distance(point: _Located, origin: Coordinate) -> float:
    """Distance in degree space: |dlat| + |dlng|. Not a geodesic distance."""
    return abs(point.lat - origin.lat) + abs(point.lng - origin.lng)


def parse_search_params(
    keys: Sequence[str],
    categories: Iterable[str],
    lat: Optional[str],
    lng: Optional[str],
) -> DealSearchParams:
    """Validate raw listing query parameters.

    Args:
        keys: Query parameter names in request order
        categories: All values given for ``category``
        lat: Raw ``lat`` value, if any
        lng: Raw ``lng`` value, if any

    Raises:
        InvalidQueryError: Unknown parameter, half a coordinate, or a
            non-numeric coordinate
        MissingFilterError: No category supplied
    """
    for key in keys:
        if key not in SEARCH_PARAMS:
            raise InvalidQueryError("Can only search by deal category and location", field=key)

    cleaned = []
    for category in categories:
        category = category.strip()
        if category and category not in cleaned:
            cleaned.append(category)
    if not cleaned:
        raise MissingFilterError()

    if (lat is None) != (lng is None):
        missing = "lng" if lng is None else "lat"
        raise InvalidQueryError("lat and lng must be supplied together", field=missing)

    origin = None
    if lat is not None:
        try:
            origin = Coordinate(lat=float(lat), lng=float(lng))
        except ValueError:
            # pydantic's ValidationError subclasses ValueError too
            raise InvalidQueryError("lat and lng must be valid coordinates", field="lat")

    return DealSearchParams(categories=cleaned, origin=origin)


def rank_visible_deals(
    deals: Sequence,
    excluded_ids: AbstractSet,
    categories: AbstractSet[str],
    origin: Optional[Coordinate] = None,
) -> List:
    """Filter and order deals for one user.

    Args:
        deals: Deals in load order, each with ``merchant`` loaded (or None
            when the merchant is gone)
        excluded_ids: Ids of deals the user holds or has redeemed.
            Dismissed deals are not excluded.
        categories: Merchant categories to keep
        origin: When given, sort nearest merchant first

    Returns:
        Visible deals. Deals at equal distance keep their load order.
    """
    visible = [
        deal
        for deal in deals
        if deal.merchant is not None
        and deal.id not in excluded_ids
        and deal.is_active
        and deal.merchant.category in categories
    ]

    if origin is not None:
        # list.sort is stable: ties keep load order
        visible.sort(key=lambda deal: manhattan_distance(deal.merchant, origin))

    return visible
