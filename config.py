from dataclasses import dataclass, field
from typing import List

VERSION = '1.0.0'

@dataclass
class SystemConfig:
    # Data file and HTTP listener
    DB_FILE: str = 'db.json'
    HOST: str = '0.0.0.0'
    PORT: int = 8080

    # CORS Configuration
    CORS_ORIGIN: str = '*'
    CORS_METHODS: str = 'GET, POST, PUT, DELETE'
    CORS_HEADERS: str = 'Content-Type, Authorization'

    # Watcher Configuration
    DEBOUNCE_SECONDS: float = 0.05  # Quiet period before a burst of events triggers one reload
    WATCH_EVENT_TYPES: List[str] = field(
        default_factory=lambda: ['created', 'modified', 'moved', 'deleted']
    )

    # Persistence Configuration
    JSON_INDENT: int = 2

    def cors_origins(self):
        """Origin setting in the form flask-cors expects"""
        origins = split_csv(self.CORS_ORIGIN)
        if not origins or '*' in origins:
            return '*'
        return origins if len(origins) > 1 else origins[0]

    def cors_methods(self) -> str:
        return ', '.join(m.upper() for m in split_csv(self.CORS_METHODS))

    def cors_headers(self) -> List[str]:
        return split_csv(self.CORS_HEADERS)


def split_csv(value: str) -> List[str]:
    """Split a comma-separated option, dropping blanks"""
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]


config = SystemConfig()
