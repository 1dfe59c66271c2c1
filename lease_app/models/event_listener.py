from sqlalchemy import event, inspect

from .models import Lease


@event.listens_for(Lease, "before_insert")
def set_defaults(mapper, connection, target: Lease):
    target.prepare_defaults()


@event.listens_for(Lease, "before_update")
def freeze_expiration(mapper, connection, target: Lease):
    history = inspect(target).attrs.rent_expiration_date.history
    if history.deleted and history.deleted[0] is not None:
        raise ValueError("rent_expiration_date is derived and cannot be edited.")
