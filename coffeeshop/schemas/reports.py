from datetime import date
from pydantic import BaseModel
from typing import Optional

class ExportIn(BaseModel):
    start_date: date
    end_date: date
    format: Optional[str] = "csv"
