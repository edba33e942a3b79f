# fasttrack/application/dtos/base_dto.py

"""
Base class for the API DTOs.

Extends pydantic's BaseModel with behaviour shared by every DTO of the
service.
"""

from pydantic import BaseModel
from typing import Any, Dict


class CustomBaseModel(BaseModel):
    """
    Base model for all DTOs.

    ``model_dump()`` leaves out fields whose value is None.
    """

    def model_dump(self, *args, **kwargs) -> Dict[str, Any]:
        """
        Dump the model without the fields that hold None.

        Returns:
            Dict[str, Any]: Model attributes, None values excluded
        """
        d = super().model_dump(*args, **kwargs)
        return {k: v for k, v in d.items() if v is not None}
