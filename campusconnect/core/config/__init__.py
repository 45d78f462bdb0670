"""
Configuration subsystem for CampusConnect.

Static vs Dynamic Configuration
--------------------------------
**Static (Config):**
- Loaded from environment variables at startup (.env supported)
- Includes: database URL and pool sizes, environment, log level
- Changes require a restart or an explicit ``Config.load()``

**Dynamic (ConfigManager):**
- Loaded from YAML defaults under ``config/``
- Includes: XP rewards, default missions, leaderboard limits
- Runtime overrides via ``ConfigManager.set_override()``

Usage
-----
```python
from campusconnect.core.config import Config, ConfigManager

db_url = Config.DATABASE_URL

ConfigManager.initialize()
reward = ConfigManager.get("progression.rewards.college_viewed", 5)
```
"""

from campusconnect.core.config.config import Config, Environment
from campusconnect.core.config.manager import ConfigManager

__all__ = [
    "Config",
    "Environment",
    "ConfigManager",
]
