"""HTTP trigger surface for the syncer.

See Also:
    [Api][adnotate.services.api.service.Api]: The service class.
    [ApiConfig][adnotate.services.api.configs.ApiConfig]: Service configuration.
"""

from .configs import ApiConfig
from .service import INVALID_DAYS_MESSAGE, Api


__all__ = ["INVALID_DAYS_MESSAGE", "Api", "ApiConfig"]
