"""Creates the process-wide DBStorage instance used by models and the API."""
from models.db_storage import DBStorage

storage = DBStorage()
storage.reload()
