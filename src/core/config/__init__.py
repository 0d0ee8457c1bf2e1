"""
Configuration subsystem.

Static vs cosmetic configuration
--------------------------------
**Config** (config.py)
- Loaded once from environment variables (`.env` via python-dotenv)
- Database URL and pool, logging, circuit breaker, scanner and GPS timings
- Changes require a restart

**ConfigManager** (manager.py)
- Dotted-key lookup over YAML files in `config/`, plus runtime overrides
- Badge display names and flavor-text fallbacks
- Never holds scoring rules; those are constants in code

Usage
-----
```python
from src.core.config import Config, ConfigManager

url = Config.DATABASE_URL
name = ConfigManager.get("badges.first-find.name")
```
"""

from src.core.config.config import Config, Environment
from src.core.config.manager import ConfigManager, ConfigManagerError

__all__ = ["Config", "Environment", "ConfigManager", "ConfigManagerError"]
