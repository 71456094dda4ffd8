"""
Warehouse Libraries

Tools for running templated SQL against a data warehouse:
- sql: load SQL templates, substitute @{variables}, execute against
  Redshift, PostgreSQL, Snowflake or SQLite
- common: shared configuration (connections.toml, .env, variable files)
"""

__version__ = '1.0.0'
