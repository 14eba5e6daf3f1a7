# Import Base class and all models so create_all can detect them
from neowatch.db.base_class import Base  # noqa
from neowatch.models.neo import NeoObject, CloseApproach  # noqa
from neowatch.models.daily_cache import DailyCache  # noqa
from neowatch.models.alert import AlertRule  # noqa
from neowatch.models.notification import Notification  # noqa
from neowatch.models.watchlist import WatchlistEntry  # noqa
from neowatch.models.user import User  # noqa
