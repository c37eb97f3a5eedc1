"""Store boundary handling shared by the protocol services."""

import functools
import logging

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError

from eckwms.errors import ConflictError, TransientError, ValidationError

logger = logging.getLogger(__name__)


def store_boundary(operation):
    """Re-classify storage failures raised inside a service method.

    The session is rolled back and the error re-raised from the taxonomy so
    no raw storage error crosses the service boundary:

    - ``IntegrityError`` (a unique or foreign key clash) becomes ``ConflictError``
    - ``DataError`` (a value the column rejects) becomes ``ValidationError``
    - any other ``SQLAlchemyError`` becomes ``TransientError``

    Application errors pass through untouched.

    Args:
        operation: Name used in the log line and the error message
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except IntegrityError as e:
                self.db.session.rollback()
                logger.warning(f"Constraint violation during {operation}: {str(e.orig)}")
                raise ConflictError(f"{operation.capitalize()} conflicts with an existing record") from e
            except DataError as e:
                self.db.session.rollback()
                logger.warning(f"Rejected value during {operation}: {str(e.orig)}")
                raise ValidationError(f"Invalid value for {operation}") from e
            except SQLAlchemyError as e:
                self.db.session.rollback()
                logger.error(f"Store error during {operation}: {str(e)}")
                raise TransientError(f"Record store unavailable during {operation}, retry later") from e
        return wrapper
    return decorator
