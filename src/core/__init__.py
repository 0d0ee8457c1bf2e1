"""
Core infrastructure layer for the GeoHunt engine.

Subsystems
----------
- config: static `Config` from the environment, `ConfigManager` over YAML
- database: async SQLAlchemy engine, sessions, transactions, circuit breaker
- event: in-process async `EventBus`
- logging: structured logging with context variables
- validation: `InputValidator`
- exceptions: infrastructure error hierarchy

This package is intentionally empty of re-exports. Import from the
subsystem packages directly so that domain modules, which depend on
`src.core.exceptions`, never pull the whole infrastructure in.
"""
