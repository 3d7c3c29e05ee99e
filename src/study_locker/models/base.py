"""Entity base class"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class BaseEntity:
    """Entity base class"""

    id: str
    created_at: datetime
    updated_at: datetime
