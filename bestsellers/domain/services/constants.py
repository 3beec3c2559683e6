# Audience segments served by the storefront widget.
SEG_MAN = "man"
SEG_WOMAN = "woman"
SEG_TEENS = "teens"
SEG_KIDS = "kids"

# Fixed vocabulary, in the order snapshot combinations are enumerated
SEGMENTS = (SEG_MAN, SEG_WOMAN, SEG_TEENS, SEG_KIDS)

# Mutually exclusive pair: a {man} request rejects products that also look like {woman} and vice versa
EXCLUSIVE_SEGMENTS = (SEG_MAN, SEG_WOMAN)

# Request-side synonyms (query string tokens and `gender:<value>` tags)
SEGMENT_ALIASES = {
    "man": SEG_MAN, "men": SEG_MAN, "hombre": SEG_MAN, "male": SEG_MAN,
    "woman": SEG_WOMAN, "women": SEG_WOMAN, "mujer": SEG_WOMAN, "female": SEG_WOMAN,
    "teens": SEG_TEENS, "teen": SEG_TEENS,
    "kids": SEG_KIDS, "kid": SEG_KIDS, "niños": SEG_KIDS, "ninos": SEG_KIDS,
}

# Product-side keyword table (tags + productType tokens), matched after normalisation
SEGMENT_KEYWORDS = {
    SEG_MAN: ("gender:man", "gender:men", "man", "men", "caballero", "mens", "hombre", "hombres"),
    SEG_WOMAN: ("gender:woman", "woman", "women", "mujer", "mujeres", "dama", "womens", "ladies", "fem"),
    SEG_TEENS: ("segment:teens", "teen", "teens", "juvenil", "adolesc"),
    SEG_KIDS: ("segment:kids", "kid", "kids", "niño", "nino", "niña", "nina", "infantil", "children", "child"),
}

GENDER_TAG_PREFIX = "gender:"

# Channels for the optional order source filter
CHANNEL_ONLINE = "online"
CHANNEL_POS = "pos"
ALL_CHANNELS = {CHANNEL_ONLINE, CHANNEL_POS}
POS_SOURCE_NAMES = {"pos", "shopify_pos"}

# Cache key namespace
KEY_PREFIX = "bestsellers"
SNAPSHOT_WINDOW_MARKER = "last30"
ALL_LABEL = "all"
