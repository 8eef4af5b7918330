from .assembler import ReportAssembler
from .validation import ReportRequest, validation_message

__all__ = ["ReportAssembler", "ReportRequest", "validation_message"]
