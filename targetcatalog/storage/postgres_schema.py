"""Postgres schema management for the target catalog.

Schema creation is idempotent (CREATE IF NOT EXISTS / ON CONFLICT DO NOTHING),
so it is safe to run before every ingestion.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg

# (symbol, name, category)
MATERIAL_SEEDS: list[tuple[str, str, str]] = [
    ("Au", "Gold", "precious"),
    ("Ag", "Silver", "precious"),
    ("Pt", "Platinum", "precious"),
    ("Pd", "Palladium", "precious"),
    ("Ir", "Iridium", "precious"),
    ("Cu", "Copper", "base"),
    ("Al", "Aluminum", "base"),
    ("Ni", "Nickel", "base"),
    ("Ti", "Titanium", "refractory"),
    ("Cr", "Chromium", "refractory"),
    ("W", "Tungsten", "refractory"),
    ("Ta", "Tantalum", "refractory"),
    ("Mo", "Molybdenum", "refractory"),
    ("C", "Carbon", "other"),
    ("Si", "Silicon", "semiconductor"),
]


SCHEMA_STATEMENTS: list[str] = [
    # Sources (provenance; one row per vendor page)
    """
    CREATE TABLE IF NOT EXISTS sources (
      id BIGSERIAL PRIMARY KEY,
      vendor TEXT NOT NULL,
      source_url TEXT NOT NULL,
      source_page_title TEXT,
      last_fetched_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      UNIQUE (vendor, source_url)
    );
    """,
    """
    DO $$ BEGIN
      CREATE TYPE target_type AS ENUM ('disc', 'annular', 'other');
    EXCEPTION
      WHEN duplicate_object THEN null;
    END $$;
    """,
    # Targets (part_number is the natural key across all vendors)
    """
    CREATE TABLE IF NOT EXISTS targets (
      id BIGSERIAL PRIMARY KEY,
      source_id BIGINT REFERENCES sources(id) ON DELETE SET NULL,
      part_number TEXT NOT NULL UNIQUE,
      target_type target_type NOT NULL DEFAULT 'disc',
      material TEXT NOT NULL,
      purity TEXT,
      diameter_mm NUMERIC(10,3),
      outer_diameter_mm NUMERIC(10,3),
      inner_diameter_mm NUMERIC(10,3),
      thickness_mm NUMERIC(10,4),
      backing_plate TEXT,
      alloy_ratio TEXT,
      notes TEXT,
      price_usd NUMERIC(10,2),
      price_notes TEXT,
      raw_excerpt TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    # Backward-compatible column adds (safe if table already exists)
    "ALTER TABLE targets ADD COLUMN IF NOT EXISTS price_usd NUMERIC(10,2);",
    "ALTER TABLE targets ADD COLUMN IF NOT EXISTS price_notes TEXT;",
    "CREATE INDEX IF NOT EXISTS idx_targets_material ON targets (material);",
    "CREATE INDEX IF NOT EXISTS idx_targets_diameter ON targets (diameter_mm);",
    "CREATE INDEX IF NOT EXISTS idx_targets_thickness ON targets (thickness_mm);",
    "CREATE INDEX IF NOT EXISTS idx_targets_type ON targets (target_type);",
    "CREATE INDEX IF NOT EXISTS idx_targets_source ON targets (source_id);",
    # Materials lookup (filtering UI)
    """
    CREATE TABLE IF NOT EXISTS materials (
      id BIGSERIAL PRIMARY KEY,
      symbol TEXT NOT NULL UNIQUE,
      name TEXT NOT NULL,
      category TEXT
    );
    """,
    """
    CREATE OR REPLACE VIEW targets_with_source AS
    SELECT
      t.*,
      s.vendor,
      s.source_url,
      s.last_fetched_at AS source_last_fetched
    FROM targets t
    LEFT JOIN sources s ON t.source_id = s.id;
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists and the materials lookup is seeded."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
            if statements is None:
                cur.executemany(
                    """
                    INSERT INTO materials (symbol, name, category)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (symbol) DO NOTHING
                    """,
                    MATERIAL_SEEDS,
                )
