"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

WILDCARD_PERMISSION = "*"

# Roles with this name are flagged as system roles when loaded from storage.
SUPER_ADMIN_ROLE_NAME = "System Admin"
# Role whose permission list is rewritten by the catalog sync.
ADMIN_ROLE_NAME = "Admin"

DEFAULT_ORG_TIMEZONE = "Asia/Kolkata"
DEFAULT_TOKEN_TTL_SECONDS = 30 * 24 * 3600
DEFAULT_HISTORY_LIMIT = 30

HALF_DAY_HOURS = 4.0
MAX_HOURS_PER_DAY = 24.0

SENSITIVE_SECTIONS = ("compensation", "identity", "family")
SELF_RESTRICTED_SECTIONS = ("employment", "compensation", "identity")

DICT_SECTIONS = ("personal", "identity", "contact", "family", "employment", "compensation", "skills")
LIST_SECTIONS = ("education", "experience")
