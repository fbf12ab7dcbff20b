from .user import User
from .item import Item
from .rating import Rating
from .quota import QuotaRecord
# base and mixins are imported by the above as needed

# table name -> model, used by the SQL record store
TABLES = {
    "users": User,
    "items": Item,
    "ratings": Rating,
    "quota_records": QuotaRecord,
}
