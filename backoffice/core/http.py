from contextlib import contextmanager

from fastapi import HTTPException, status

from backoffice.core.errors import (
    ImmutableRecordError,
    NotFoundError,
    ValidationError,
    VatRateNotFound,
)


@contextmanager
def http_errors():
    """Turn domain errors raised inside a route into HTTP responses."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except (ValidationError, VatRateNotFound) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except ImmutableRecordError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
