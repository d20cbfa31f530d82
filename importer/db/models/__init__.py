from importer.db.models.base import Base
from importer.db.models.client import ClientRecord
from importer.db.models.product import ProductRecord
from importer.db.models.user import UserRecord

__all__ = ["Base", "ClientRecord", "ProductRecord", "UserRecord"]
