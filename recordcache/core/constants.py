"""Core constants: cache key structure and shared literal values."""

# Delimiter between key components: prefix/table/field/value/...
CACHE_KEY_SEP = "/"

# Suffix of the whole-table mirror key: prefix/table/full
FULL_TABLE_SUFFIX = "full"

# Stored value meaning "confirmed absent in store" (negative cache)
NULL_SENTINEL = "null"

# Rendering of an unset optional value inside a cache key
NULL_LITERAL = "null"
