# API Utilities - DRY Helpers
from app.api.utils.db_helpers import get_by_id, validate_unique
from app.api.utils.pagination import paginate_query, apply_search_filter, apply_filters
from app.api.utils.sequencers import generate_sequential_number, Prefixes
from app.api.utils.updates import update_entity
from app.api.utils.serializers import serialize, serialize_many

__all__ = [
    # db_helpers
    "get_by_id",
    "validate_unique",
    # pagination
    "paginate_query",
    "apply_search_filter",
    "apply_filters",
    # sequencers
    "generate_sequential_number",
    "Prefixes",
    # updates
    "update_entity",
    # serializers
    "serialize",
    "serialize_many",
]
