"""
Keyword categorizer shared by the recognition helpers.
"""

# Checked in order; the first category with a keyword contained in the label wins
CATEGORY_KEYWORDS = [
    ("Electronics", [
        "phone", "laptop", "tablet", "camera", "headphone", "speaker", "charger", "computer",
        "keyboard", "mouse", "monitor", "tv", "remote", "smartphone", "iphone", "android",
        "ipad", "macbook", "pc", "gaming", "console", "playstation", "xbox", "nintendo",
        "drone", "bluetooth", "wireless", "electronic", "device", "gadget",
    ]),
    ("Clothing", [
        "shirt", "pants", "dress", "jacket", "sweater", "jeans", "blouse", "skirt", "coat",
        "suit", "hoodie", "cardigan", "blazer", "vest", "shorts", "tank", "polo", "tunic",
        "romper", "jumpsuit", "clothing", "apparel", "garment", "textile", "fabric",
    ]),
    ("Shoes", [
        "shoe", "boot", "sneaker", "sandal", "heel", "loafer", "slipper", "flip", "flop",
        "moccasin", "oxford", "pump", "stiletto", "wedge", "athletic", "running", "walking",
        "footwear", "foot",
    ]),
    ("Accessories", [
        "bag", "purse", "handbag", "backpack", "watch", "ring", "necklace", "bracelet",
        "earring", "belt", "scarf", "hat", "cap", "gloves", "sunglasses", "wallet", "clutch",
        "tote", "messenger", "jewelry", "accessory", "pendant", "brooch", "tie", "bow",
    ]),
    ("Books", [
        "book", "magazine", "newspaper", "notebook", "journal", "textbook", "novel", "manual",
        "guide", "comic", "manga", "dictionary", "encyclopedia", "atlas", "calendar",
        "planner", "diary",
    ]),
    ("Home", [
        "furniture", "chair", "table", "lamp", "mirror", "vase", "decoration", "couch", "sofa",
        "bed", "dresser", "desk", "shelf", "cabinet", "drawer", "nightstand", "ottoman",
        "bench", "stool", "artwork", "painting", "sculpture", "plant", "pot", "frame",
        "clock", "candle",
    ]),
    ("Sports", [
        "ball", "racket", "club", "bat", "helmet", "equipment", "gear", "golf", "tennis",
        "baseball", "football", "basketball", "soccer", "hockey", "ski", "snowboard", "bike",
        "bicycle", "skateboard", "fitness", "yoga", "mat", "dumbbell", "weight", "treadmill",
        "exercise",
    ]),
    ("Toys", [
        "toy", "game", "puzzle", "doll", "action figure", "lego", "board game", "card game",
        "video game", "stuffed animal", "teddy bear", "robot", "model", "kit", "building",
        "construction",
    ]),
    ("Kitchen", [
        "kitchen", "appliance", "microwave", "toaster", "blender", "mixer", "coffee maker",
        "kettle", "pan", "pot", "dish", "plate", "bowl", "cup", "mug", "glass", "cutlery",
        "knife", "fork", "spoon",
    ]),
    ("Tools", [
        "tool", "hammer", "screwdriver", "wrench", "pliers", "drill", "saw", "level",
        "tape measure", "hardware", "screw", "nail", "bolt", "nut", "bracket", "hinge", "lock",
    ]),
]


def categorize_item(label: str) -> str:
    """Map a provider label to a catalog category ("Other" when nothing matches)."""
    lowered = (label or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "Other"


# Relevance filtering: labels on the ignore list need a higher confidence to be kept
OBJECTS_OF_INTEREST = [
    "watch", "ring", "necklace", "bracelet", "earring", "pendant", "brooch", "tie", "bow",
    "phone", "laptop", "tablet", "camera", "headphone", "speaker", "charger", "keyboard",
    "mouse", "monitor", "tv", "remote", "smartphone", "iphone", "android", "ipad", "macbook",
    "pc", "gaming", "console", "playstation", "xbox", "nintendo", "drone",
    "jacket", "shirt", "dress", "pants", "jeans", "sweater", "blouse", "skirt", "coat", "suit",
    "hoodie", "cardigan", "blazer", "vest", "shorts", "tank", "polo", "tunic", "romper", "jumpsuit",
    "shoe", "boot", "sneaker", "sandal", "heel", "loafer", "slipper", "flip", "flop", "moccasin",
    "oxford", "pump", "stiletto", "wedge",
    "bag", "purse", "handbag", "backpack", "wallet", "clutch", "tote", "messenger",
    "book", "magazine", "newspaper", "notebook", "journal", "textbook", "novel", "manual",
    "guide", "comic", "manga", "dictionary", "encyclopedia", "atlas", "calendar", "planner", "diary",
    "lamp", "mirror", "vase", "decoration", "artwork", "painting", "sculpture", "plant", "pot",
    "frame", "clock", "candle",
    "ball", "racket", "club", "bat", "helmet", "equipment", "gear", "golf", "tennis", "baseball",
    "football", "basketball", "soccer", "hockey", "ski", "snowboard", "bike", "bicycle",
    "skateboard", "fitness", "yoga", "mat", "dumbbell", "weight", "treadmill", "exercise",
    "toy", "game", "puzzle", "doll", "action figure", "lego", "board game", "card game",
    "video game", "stuffed animal", "teddy bear", "robot", "model", "kit", "building", "construction",
    "kitchen", "appliance", "microwave", "toaster", "blender", "mixer", "coffee maker", "kettle",
    "pan", "dish", "plate", "bowl", "cup", "mug", "glass", "cutlery", "knife", "fork", "spoon",
    "tool", "hammer", "screwdriver", "wrench", "pliers", "drill", "saw", "level", "tape measure",
    "hardware", "screw", "nail", "bolt", "nut", "bracket", "hinge", "lock",
]

OBJECTS_TO_IGNORE = [
    # body parts
    "sleeve", "arm", "hand", "finger", "wrist", "forearm", "elbow", "shoulder", "leg", "foot",
    "toe", "ankle", "knee", "thigh", "calf", "face", "eye", "nose", "mouth", "ear", "cheek",
    "chin", "forehead", "hair", "beard", "mustache", "neck", "chest", "back", "stomach", "waist",
    "hip", "buttock", "person", "body", "skin",
    # furniture and surfaces
    "table", "desk", "chair", "furniture", "surface", "background", "counter", "shelf",
    "cabinet", "drawer", "nightstand", "ottoman", "bench", "stool", "couch", "sofa", "bed",
    "dresser", "wardrobe", "closet", "bookshelf", "sideboard", "buffet",
    # scenery
    "wall", "floor", "ceiling", "sky", "ground", "grass", "tree", "leaf", "branch", "flower",
    "bush", "shrub", "water", "ocean", "sea", "lake", "river", "pond", "pool", "fountain",
    "mountain", "hill", "valley", "rock", "stone", "boulder", "cliff", "house", "home",
    "office", "room", "door", "window", "roof", "chimney",
    # generic terms
    "clothing", "garment", "textile", "fabric", "material", "object", "item", "thing",
    "product", "fashion", "pattern", "design", "color", "texture", "shape", "size", "style",
]

CONFIDENCE_THRESHOLDS = {
    "objects_of_interest": 0.6,
    "objects_to_ignore": 0.8,
    "default": 0.7,
}


def relevance_class(label: str) -> str:
    """Classify a label for filtering; objects of interest win over the ignore list."""
    lowered = (label or "").lower()
    if any(keyword in lowered for keyword in OBJECTS_OF_INTEREST):
        return "objects_of_interest"
    if any(keyword in lowered for keyword in OBJECTS_TO_IGNORE):
        return "objects_to_ignore"
    return "default"


def apply_category_filtering(items, thresholds=None):
    """Drop items whose confidence is below the threshold of their relevance class."""
    thresholds = thresholds or CONFIDENCE_THRESHOLDS
    return [
        item for item in items
        if item.confidence >= thresholds[relevance_class(item.name)]
    ]
