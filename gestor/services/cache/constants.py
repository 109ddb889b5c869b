"""Cache TTL and key prefix constants."""

# Cache TTL constants (in seconds)
TTL_PROFILE = 300  # 5 minutes - read on almost every request
TTL_EXPENSES = 180  # 3 minutes - listings change often
TTL_ORDERS = 180  # 3 minutes
TTL_RECIPES = 600  # 10 minutes - rarely edited
TTL_INVENTORY = 180  # 3 minutes
TTL_ANALYSIS = 3600  # 1 hour - AI generation is expensive

DEFAULT_TTL = 300
DEFAULT_MAX_ENTRIES = 1000
EVICTION_FRACTION = 0.2  # share of oldest entries dropped when full

# Cache key prefixes - "<kind>:<uid>"
KEY_PREFIX_PROFILE = "profile"
KEY_PREFIX_EXPENSES = "expenses"
KEY_PREFIX_ORDERS = "orders"
KEY_PREFIX_RECIPES = "recipes"
KEY_PREFIX_INVENTORY = "inventory"
KEY_PREFIX_ANALYSIS = "analysis"  # analysis:{uid}:{sha256(query)}

# Namespace for keys in the shared remote backend
REMOTE_NAMESPACE = "gestor"

ENTITY_TTLS = {
    KEY_PREFIX_PROFILE: TTL_PROFILE,
    KEY_PREFIX_EXPENSES: TTL_EXPENSES,
    KEY_PREFIX_ORDERS: TTL_ORDERS,
    KEY_PREFIX_RECIPES: TTL_RECIPES,
    KEY_PREFIX_INVENTORY: TTL_INVENTORY,
    KEY_PREFIX_ANALYSIS: TTL_ANALYSIS,
}

# Kinds dropped by invalidate_user_cache
USER_ENTITY_KINDS = (
    KEY_PREFIX_PROFILE,
    KEY_PREFIX_EXPENSES,
    KEY_PREFIX_ORDERS,
    KEY_PREFIX_RECIPES,
    KEY_PREFIX_INVENTORY,
)
