from __future__ import annotations

SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""

SCHEMA_MIGRATIONS_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    applied_at TEXT NOT NULL,
    notes TEXT
);
"""

SCHEMA_CONTRACTORS_SQL = """
CREATE TABLE IF NOT EXISTS contractors (
    contractor_id TEXT PRIMARY KEY,
    spectrum_id TEXT NOT NULL UNIQUE,
    name TEXT,
    archived INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS contractor_members (
    contractor_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    capabilities TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (contractor_id, user_id),
    FOREIGN KEY (contractor_id) REFERENCES contractors (contractor_id) ON DELETE CASCADE
);
"""

SCHEMA_LISTING_DETAILS_SQL = """
CREATE TABLE IF NOT EXISTS listing_details (
    details_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    item_type TEXT NOT NULL DEFAULT 'other',
    game_item_id TEXT,
    FOREIGN KEY (game_item_id) REFERENCES catalog_items (game_item_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_listing_details_game_item ON listing_details (game_item_id);
"""

SCHEMA_CATALOG_SQL = """
CREATE TABLE IF NOT EXISTS catalog_items (
    game_item_id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    details_id TEXT NOT NULL UNIQUE
);
"""

SCHEMA_LISTINGS_SQL = """
CREATE TABLE IF NOT EXISTS market_listings (
    listing_id TEXT PRIMARY KEY,
    sale_type TEXT NOT NULL,
    price REAL NOT NULL DEFAULT 0,
    quantity_available INTEGER NOT NULL DEFAULT 1 CHECK (quantity_available >= 0),
    status TEXT NOT NULL DEFAULT 'active',
    user_seller_id TEXT,
    contractor_seller_id TEXT,
    internal INTEGER NOT NULL DEFAULT 0,
    timestamp TEXT NOT NULL,
    expiration TEXT NOT NULL,
    CHECK (NOT (user_seller_id IS NOT NULL AND contractor_seller_id IS NOT NULL)),
    FOREIGN KEY (contractor_seller_id) REFERENCES contractors (contractor_id)
);
CREATE INDEX IF NOT EXISTS idx_market_listings_user ON market_listings (user_seller_id);
CREATE INDEX IF NOT EXISTS idx_market_listings_contractor ON market_listings (contractor_seller_id);

CREATE TABLE IF NOT EXISTS unique_listings (
    listing_id TEXT PRIMARY KEY,
    details_id TEXT NOT NULL UNIQUE,
    accept_offers INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (listing_id) REFERENCES market_listings (listing_id) ON DELETE CASCADE,
    FOREIGN KEY (details_id) REFERENCES listing_details (details_id)
);

CREATE TABLE IF NOT EXISTS aggregate_listings (
    listing_id TEXT PRIMARY KEY,
    game_item_id TEXT NOT NULL,
    FOREIGN KEY (listing_id) REFERENCES market_listings (listing_id) ON DELETE CASCADE,
    FOREIGN KEY (game_item_id) REFERENCES catalog_items (game_item_id)
);
"""

SCHEMA_AUCTIONS_SQL = """
CREATE TABLE IF NOT EXISTS auction_details (
    listing_id TEXT PRIMARY KEY,
    minimum_bid_increment REAL NOT NULL,
    end_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    FOREIGN KEY (listing_id) REFERENCES market_listings (listing_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS bids (
    bid_id TEXT PRIMARY KEY,
    listing_id TEXT NOT NULL,
    user_bidder_id TEXT NOT NULL,
    bid REAL NOT NULL,
    timestamp TEXT NOT NULL,
    UNIQUE (listing_id, user_bidder_id),
    FOREIGN KEY (listing_id) REFERENCES market_listings (listing_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_bids_listing_id ON bids (listing_id);
"""

SCHEMA_MULTIPLES_SQL = """
CREATE TABLE IF NOT EXISTS multiples (
    multiple_id TEXT PRIMARY KEY,
    details_id TEXT NOT NULL UNIQUE,
    default_listing_id TEXT NOT NULL,
    user_seller_id TEXT,
    contractor_seller_id TEXT,
    CHECK (NOT (user_seller_id IS NOT NULL AND contractor_seller_id IS NOT NULL)),
    FOREIGN KEY (details_id) REFERENCES listing_details (details_id),
    FOREIGN KEY (default_listing_id) REFERENCES market_listings (listing_id)
);

CREATE TABLE IF NOT EXISTS multiple_listings (
    multiple_listing_id TEXT PRIMARY KEY,
    multiple_id TEXT NOT NULL,
    details_id TEXT NOT NULL,
    FOREIGN KEY (multiple_listing_id) REFERENCES market_listings (listing_id) ON DELETE CASCADE,
    FOREIGN KEY (multiple_id) REFERENCES multiples (multiple_id) ON DELETE CASCADE,
    FOREIGN KEY (details_id) REFERENCES listing_details (details_id)
);
CREATE INDEX IF NOT EXISTS idx_multiple_listings_multiple ON multiple_listings (multiple_id);
"""

SCHEMA_BUY_ORDERS_SQL = """
CREATE TABLE IF NOT EXISTS buy_orders (
    buy_order_id TEXT PRIMARY KEY,
    game_item_id TEXT NOT NULL,
    buyer_id TEXT NOT NULL,
    quantity INTEGER NOT NULL CHECK (quantity >= 1),
    price REAL NOT NULL,
    expiry TEXT NOT NULL,
    created_timestamp TEXT NOT NULL,
    fulfilled_timestamp TEXT,
    FOREIGN KEY (game_item_id) REFERENCES catalog_items (game_item_id)
);
CREATE INDEX IF NOT EXISTS idx_buy_orders_game_item ON buy_orders (game_item_id);
"""

SCHEMA_RESOURCES_SQL = """
CREATE TABLE IF NOT EXISTS image_resources (
    resource_id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    external_url TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS listing_photos (
    resource_id TEXT NOT NULL,
    details_id TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (resource_id, details_id),
    FOREIGN KEY (details_id) REFERENCES listing_details (details_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_listing_photos_details ON listing_photos (details_id);
"""

SCHEMA_OFFERS_SQL = """
CREATE TABLE IF NOT EXISTS offers (
    offer_id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    customer_id TEXT NOT NULL,
    assigned_id TEXT,
    contractor_id TEXT,
    actor_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    cost TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS offer_listings (
    offer_id TEXT NOT NULL,
    listing_id TEXT NOT NULL,
    quantity INTEGER NOT NULL,
    PRIMARY KEY (offer_id, listing_id),
    FOREIGN KEY (offer_id) REFERENCES offers (offer_id) ON DELETE CASCADE
);
"""

ALL_TABLES_SQL = (
    SCHEMA_CONTRACTORS_SQL,
    SCHEMA_CATALOG_SQL,
    SCHEMA_LISTING_DETAILS_SQL,
    SCHEMA_LISTINGS_SQL,
    SCHEMA_AUCTIONS_SQL,
    SCHEMA_MULTIPLES_SQL,
    SCHEMA_BUY_ORDERS_SQL,
    SCHEMA_RESOURCES_SQL,
    SCHEMA_OFFERS_SQL,
)
