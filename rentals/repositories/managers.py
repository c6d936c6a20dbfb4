from rentals.models import database
from rentals.models import schemas
from rentals.repositories.contacts import ContactRepository


class ManagerRepository(ContactRepository):
    table = database.Manager.__table__
    model = schemas.Manager
