"""Shared route dependencies and error translation."""

from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from survegio.models.database import get_db
from survegio.services.data_source import DataSourceError
from survegio.services.orchestrator import EvaluationOrchestrator, SurveyNotFoundError
from survegio.services.sql_data_source import SqlAlchemyDataSource


def get_orchestrator(db: Session = Depends(get_db)) -> EvaluationOrchestrator:
    """Build an orchestrator over the request's database session."""
    return EvaluationOrchestrator(SqlAlchemyDataSource(db))


@contextmanager
def service_errors() -> Iterator[None]:
    """Translate orchestrator failures into HTTP errors.

    Raises:
        HTTPException: 404 for unknown surveys, 502 for data source failures
    """
    try:
        yield
    except SurveyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
