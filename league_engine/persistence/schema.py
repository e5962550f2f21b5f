"""
SQLite schema for league engine entities.
Migration-friendly: each table created with IF NOT EXISTS.
Instants are stored as UTC ISO-8601 strings so they sort lexically.
"""
from __future__ import annotations


def teams_schema() -> str:
    """Clubs. is_synthetic = placeholder kept to fill a division."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        region TEXT NOT NULL,
        is_synthetic INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS ix_teams_region ON teams(region);
    """


def seasons_schema() -> str:
    """One row per (track, season_number). status: open | closed."""
    return """
    CREATE TABLE IF NOT EXISTS seasons (
        id TEXT PRIMARY KEY,
        track TEXT NOT NULL,
        season_number INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'open',
        created_at TEXT NOT NULL,
        closed_at TEXT
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_seasons_track_number ON seasons(track, season_number);
    """


def divisions_schema() -> str:
    """Fixed-capacity group per (season, region, tier). stage: regular | playoff | offseason."""
    return """
    CREATE TABLE IF NOT EXISTS divisions (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        region TEXT NOT NULL,
        tier TEXT NOT NULL,
        tier_level INTEGER NOT NULL,
        name TEXT NOT NULL,
        capacity INTEGER NOT NULL,
        stage TEXT NOT NULL DEFAULT 'regular',
        created_at TEXT NOT NULL,
        offseason_started_at TEXT,
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_divisions_season_region_tier ON divisions(season_id, region, tier);
    """


def memberships_schema() -> str:
    """A team's seat and standing in one division. Fresh every season."""
    return """
    CREATE TABLE IF NOT EXISTS memberships (
        division_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        wins INTEGER NOT NULL DEFAULT 0,
        losses INTEGER NOT NULL DEFAULT 0,
        draws INTEGER NOT NULL DEFAULT 0,
        points INTEGER NOT NULL DEFAULT 0,
        goal_difference INTEGER NOT NULL DEFAULT 0,
        is_synthetic INTEGER NOT NULL DEFAULT 0,
        carried_outcome TEXT,
        joined_at TEXT NOT NULL,
        PRIMARY KEY (division_id, team_id),
        FOREIGN KEY (division_id) REFERENCES divisions(id),
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_memberships_team ON memberships(team_id);
    """


def fixtures_schema() -> str:
    """Regular-season match. status: scheduled | live | finished. One fixture per division instant."""
    return """
    CREATE TABLE IF NOT EXISTS fixtures (
        id TEXT PRIMARY KEY,
        division_id TEXT NOT NULL,
        round_label TEXT NOT NULL,
        sequence INTEGER NOT NULL,
        home_team_id TEXT NOT NULL,
        away_team_id TEXT NOT NULL,
        scheduled_at TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'scheduled',
        home_score INTEGER,
        away_score INTEGER,
        completed_at TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (division_id) REFERENCES divisions(id),
        FOREIGN KEY (home_team_id) REFERENCES teams(id),
        FOREIGN KEY (away_team_id) REFERENCES teams(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_fixtures_division_slot ON fixtures(division_id, scheduled_at);
    CREATE INDEX IF NOT EXISTS ix_fixtures_division_status ON fixtures(division_id, status);
    """


def brackets_schema() -> str:
    """Knockout competition. round_sequence is a comma-separated label list. division_id NULL = cup."""
    return """
    CREATE TABLE IF NOT EXISTS brackets (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        division_id TEXT,
        competition_kind TEXT NOT NULL,
        round_sequence TEXT NOT NULL,
        current_round TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TEXT NOT NULL,
        completed_at TEXT,
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (division_id) REFERENCES divisions(id)
    );
    CREATE INDEX IF NOT EXISTS ix_brackets_season ON brackets(season_id);
    """


def bracket_seeds_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS bracket_seeds (
        bracket_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        seed_rank INTEGER NOT NULL,
        has_bye INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (bracket_id, team_id),
        FOREIGN KEY (bracket_id) REFERENCES brackets(id)
    );
    """


def bracket_matches_schema() -> str:
    """NULL participant = TBD until the previous round resolves it."""
    return """
    CREATE TABLE IF NOT EXISTS bracket_matches (
        id TEXT PRIMARY KEY,
        bracket_id TEXT NOT NULL,
        round TEXT NOT NULL,
        match_number INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        home_team_id TEXT,
        away_team_id TEXT,
        winner_team_id TEXT,
        home_score INTEGER,
        away_score INTEGER,
        scheduled_at TEXT,
        completed_at TEXT,
        FOREIGN KEY (bracket_id) REFERENCES brackets(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_bracket_matches_slot ON bracket_matches(bracket_id, round, match_number);
    """


def qualification_records_schema() -> str:
    """Append-only. One row per (bracket, team)."""
    return """
    CREATE TABLE IF NOT EXISTS qualification_records (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        bracket_id TEXT NOT NULL,
        division_id TEXT,
        team_id TEXT NOT NULL,
        final_rank INTEGER NOT NULL,
        destination TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (bracket_id) REFERENCES brackets(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_qualification_bracket_team ON qualification_records(bracket_id, team_id);
    """


def movements_schema() -> str:
    """Promotion/relegation log written at season close."""
    return """
    CREATE TABLE IF NOT EXISTS movements (
        season_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        region TEXT NOT NULL,
        from_tier TEXT NOT NULL,
        to_tier TEXT NOT NULL,
        kind TEXT NOT NULL,
        PRIMARY KEY (season_id, team_id),
        FOREIGN KEY (season_id) REFERENCES seasons(id)
    );
    """


def synthetic_replacements_schema() -> str:
    """A real team took a synthetic seat; the inherited record is kept for audit."""
    return """
    CREATE TABLE IF NOT EXISTS synthetic_replacements (
        synthetic_team_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        division_id TEXT NOT NULL,
        wins INTEGER NOT NULL,
        losses INTEGER NOT NULL,
        draws INTEGER NOT NULL,
        points INTEGER NOT NULL,
        goal_difference INTEGER NOT NULL,
        replaced_at TEXT NOT NULL,
        PRIMARY KEY (division_id, synthetic_team_id),
        FOREIGN KEY (division_id) REFERENCES divisions(id)
    );
    """


def prize_payouts_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS prize_payouts (
        bracket_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        amount INTEGER NOT NULL,
        reason TEXT NOT NULL,
        paid_at TEXT NOT NULL,
        PRIMARY KEY (bracket_id, team_id)
    );
    """


def generation_log_schema() -> str:
    """Idempotency keys: one row per (season, scope, stage) ever generated."""
    return """
    CREATE TABLE IF NOT EXISTS generation_log (
        season_id TEXT NOT NULL,
        scope_id TEXT NOT NULL,
        stage TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (season_id, scope_id, stage)
    );
    """


def sequences_schema() -> str:
    """Named monotonic counters (synthetic team numbering)."""
    return """
    CREATE TABLE IF NOT EXISTS sequences (
        name TEXT PRIMARY KEY,
        value INTEGER NOT NULL
    );
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Referenced tables first."""
    return "\n".join([
        teams_schema(),
        seasons_schema(),
        divisions_schema(),
        memberships_schema(),
        fixtures_schema(),
        brackets_schema(),
        bracket_seeds_schema(),
        bracket_matches_schema(),
        qualification_records_schema(),
        movements_schema(),
        synthetic_replacements_schema(),
        prize_payouts_schema(),
        generation_log_schema(),
        sequences_schema(),
    ])
