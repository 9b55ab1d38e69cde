"""Catalog constants."""

# Brands an administrator may add products for, with their Ukrainian names
BRAND_TRANSLATIONS = {
    "Denkmit": "Денкміт",
    "Balea": "Балеа",
    "Alverde": "Альверде",
    "Dontodent": "Донтодент",
    "Mivolis": "Міволіс",
    "Frosch": "Фрош",
    "Profissimo": "Профісімо",
    "Babylove": "Бейбілав",
    "Visiomax": "Візіомакс",
    "Deluxe": "Делюкс",
    "Theramed": "Тхерамед",
}

# Brand pages: URL slug -> (brand prefix, category slugs)
FEATURED_BRANDS = {
    "denkmit": ("Denkmit", ("kitchen", "washing", "wc", "cleaning", "fresh", "other")),
    "balea": ("Balea", ("hair", "skin", "body", "shave", "hygiene")),
    "alverde": ("Alverde", ()),
    "dontodent": ("Dontodent", ()),
    "mivolis": ("Mivolis", ()),
    "frosch": ("Frosch", ()),
    "profissimo": ("Profissimo", ()),
    "babylove": ("Babylove", ()),
}

# Brands excluded from the "other brands" page
FEATURED_BRAND_NAMES = (
    "Denkmit",
    "Balea",
    "Balea MEN",
    "Balea MED",
    "Alverde",
    "Dontodent",
    "Mivolis",
    "Frosch",
    "Profissimo",
    "Babylove",
)

CATALOG_PAGE_LIMIT = 90
NEWEST_LIMIT = 30
ORDERS_PAGE_SIZE = 20

# Nova Poshta branch kinds
BRANCH_TYPE_OFFICE = "Відділення"
BRANCH_TYPE_PARCEL_LOCKER = "Поштомат"
