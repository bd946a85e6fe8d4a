from .admin import router as admin
from .buckets import router as buckets
from .cron import router as cron
