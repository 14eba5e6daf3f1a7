# Import all models so SQLAlchemy can resolve relationships
from neowatch.models.neo import NeoObject as NeoObject, CloseApproach as CloseApproach
from neowatch.models.daily_cache import DailyCache as DailyCache
from neowatch.models.alert import AlertRule as AlertRule, AlertKind as AlertKind
from neowatch.models.notification import Notification as Notification
from neowatch.models.watchlist import WatchlistEntry as WatchlistEntry
from neowatch.models.user import User as User
