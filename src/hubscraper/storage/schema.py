# src/hubscraper/storage/schema.py

# SQLite schema for the hub database. Table order matters: referenced tables come first.
SCHEMA_DEFINITIONS = {
    'providers': '''
        CREATE TABLE IF NOT EXISTS providers (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            colour TEXT NOT NULL DEFAULT '#888888',   -- Brand colour used by the renderer
            website TEXT,
            status_url TEXT,
            docs_url TEXT,
            description TEXT,
            founded TEXT,
            headquarters TEXT,
            ceo TEXT,
            funding TEXT,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    ''',

    'models': '''
        CREATE TABLE IF NOT EXISTS models (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            provider_id TEXT NOT NULL REFERENCES providers(id),
            input_price REAL NOT NULL DEFAULT 0,       -- USD per 1M input units
            output_price REAL NOT NULL DEFAULT 0,      -- USD per 1M output units
            context_window INTEGER NOT NULL DEFAULT 0,
            max_output INTEGER NOT NULL DEFAULT 0,
            speed INTEGER NOT NULL DEFAULT 0,          -- Throughput estimate, tokens/s
            quality_score REAL NOT NULL DEFAULT 0,
            released TEXT,                             -- YYYY-MM-DD
            open_source INTEGER NOT NULL DEFAULT 0,
            modality TEXT NOT NULL DEFAULT 'text',     -- Comma-joined tags, e.g. 'text,vision'
            api_available INTEGER NOT NULL DEFAULT 1,
            notes TEXT,
            category TEXT NOT NULL DEFAULT 'llm',      -- llm|image|video|speech|voice|music
            status TEXT NOT NULL DEFAULT 'active',     -- active|retired
            pricing_source TEXT,
            pricing_updated TEXT,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    ''',

    'benchmarks': '''
        CREATE TABLE IF NOT EXISTS benchmarks (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'general',
            description TEXT,
            url TEXT,
            scale_min REAL NOT NULL DEFAULT 0,
            scale_max REAL NOT NULL DEFAULT 100,
            higher_is_better INTEGER NOT NULL DEFAULT 1,
            weight REAL NOT NULL DEFAULT 1.0,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    ''',

    # One current score per (model, benchmark); re-ingestion overwrites it
    'benchmark_scores': '''
        CREATE TABLE IF NOT EXISTS benchmark_scores (
            model_id TEXT NOT NULL REFERENCES models(id),
            benchmark_id TEXT NOT NULL REFERENCES benchmarks(id),
            score REAL NOT NULL,
            source TEXT,
            source_url TEXT,
            measured_at TEXT,
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            PRIMARY KEY (model_id, benchmark_id)
        );
    ''',

    # Append-only audit trail, never updated or deleted
    'price_history': '''
        CREATE TABLE IF NOT EXISTS price_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            model_id TEXT NOT NULL REFERENCES models(id),
            input_price REAL NOT NULL,
            output_price REAL NOT NULL,
            recorded_at TEXT NOT NULL DEFAULT (datetime('now')),
            source TEXT
        );
    ''',

    'scrape_log': '''
        CREATE TABLE IF NOT EXISTS scrape_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            scraper TEXT NOT NULL,                     -- e.g. pricing:openai, benchmarks:chatbot-arena
            status TEXT NOT NULL DEFAULT 'success',    -- success|error
            models_updated INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            started_at TEXT NOT NULL DEFAULT (datetime('now')),
            finished_at TEXT
        );
    ''',

    'news': '''
        CREATE TABLE IF NOT EXISTS news (
            id TEXT PRIMARY KEY,                       -- {digest-date}-{title slug}
            title TEXT NOT NULL,
            url TEXT NOT NULL,
            source TEXT,
            summary TEXT,
            published_at TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'news',
            imported_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
    ''',
}

INDICES = [
    'CREATE INDEX IF NOT EXISTS idx_models_provider ON models(provider_id)',
    'CREATE INDEX IF NOT EXISTS idx_models_category ON models(category, status)',
    'CREATE INDEX IF NOT EXISTS idx_benchmark_scores_model ON benchmark_scores(model_id)',
    'CREATE INDEX IF NOT EXISTS idx_benchmark_scores_benchmark ON benchmark_scores(benchmark_id)',
    'CREATE INDEX IF NOT EXISTS idx_price_history_model ON price_history(model_id, recorded_at)',
    'CREATE INDEX IF NOT EXISTS idx_scrape_log_scraper ON scrape_log(scraper, finished_at DESC)',
    'CREATE INDEX IF NOT EXISTS idx_news_published ON news(published_at DESC)',
]

PRAGMAS = [
    'PRAGMA journal_mode=WAL;',        # Readers keep working while the single writer commits
    'PRAGMA synchronous=NORMAL;',      # NORMAL is safe with WAL
    'PRAGMA foreign_keys=ON;',         # models.provider_id must reference a provider
    'PRAGMA busy_timeout=5000;'
]

# Reference tables carry their own updated_at; keep it current on metadata edits
TRIGGERS = {
    'update_providers_updated_at': '''
        CREATE TRIGGER IF NOT EXISTS update_providers_updated_at
        AFTER UPDATE ON providers
        FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
        BEGIN
            UPDATE providers SET updated_at = datetime('now') WHERE id = OLD.id;
        END;
    ''',
    'update_benchmarks_updated_at': '''
        CREATE TRIGGER IF NOT EXISTS update_benchmarks_updated_at
        AFTER UPDATE ON benchmarks
        FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
        BEGIN
            UPDATE benchmarks SET updated_at = datetime('now') WHERE id = OLD.id;
        END;
    ''',
}
