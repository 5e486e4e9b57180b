# tablekit/constants.py
# URL keys and wire defaults owned by the table query engine

DEFAULT_PAGE_SIZE: int = 50

PAGE_KEY: str = "page"
PAGE_SIZE_KEY: str = "pageSize"
SORT_KEY: str = "sort"
FILTERS_KEY: str = "filters"
VISIBILITY_KEY: str = "visibility"
ORDER_KEY: str = "order"

# Only these keys are ever written to or removed from a URL store.
ENGINE_PARAM_KEYS: tuple[str, ...] = (
    PAGE_KEY,
    PAGE_SIZE_KEY,
    SORT_KEY,
    FILTERS_KEY,
    VISIBILITY_KEY,
    ORDER_KEY,
)

# Characters encodeURIComponent leaves untouched besides alphanumerics and "-_."
URI_COMPONENT_SAFE: str = "!~*'()"

# Prefix for suggestion cache entries in Redis
SUGGESTION_CACHE_PREFIX: str = "views:suggest"
