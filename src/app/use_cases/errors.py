"""Translation of domain errors into Result errors"""

from libs.result import Error
from src.domain.errors import CreditsError


def error_from(exc: CreditsError) -> Error:
    return Error(code=exc.code, message=exc.message, reason=exc.reason)
