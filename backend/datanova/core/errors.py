"""
Workflow exceptions, error message constants and utilities for user-friendly error handling.
"""
from typing import Dict, Optional

# Error codes
class ErrorCodes:
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_EMPTY = "FILE_EMPTY"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UPLOAD_IN_PROGRESS = "UPLOAD_IN_PROGRESS"
    TRANSPORT_FAILURE = "TRANSPORT_FAILURE"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_CHART_TYPE = "UNKNOWN_CHART_TYPE"
    MISSING_AXIS = "MISSING_AXIS"
    UNKNOWN_COLUMN = "UNKNOWN_COLUMN"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    INVALID_STYLE = "INVALID_STYLE"
    CHART_STATE_ERROR = "CHART_STATE_ERROR"
    NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"
    REGENERATION_ERROR = "REGENERATION_ERROR"
    UNSUPPORTED_EXPORT = "UNSUPPORTED_EXPORT"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

# User-friendly error messages - friendly, helpful, and empathetic
ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    ErrorCodes.INVALID_FILE_TYPE: {
        "message": "We need a CSV file",
        "detail": "DataNova reads comma-separated files (.csv). The file you picked isn't one we can analyze.",
        "suggestion": "💡 Most spreadsheet tools have a 'Download as CSV' or 'Save As > CSV' option in the File menu."
    },
    ErrorCodes.FILE_EMPTY: {
        "message": "Hmm, your file looks empty",
        "detail": "We couldn't find any data in the file you uploaded. This might happen if the file wasn't saved properly.",
        "suggestion": "💡 Make sure your file has data in it, save it again, and try uploading once more."
    },
    ErrorCodes.FILE_TOO_LARGE: {
        "message": "Oops! Your file is a bit too large",
        "detail": "Your file exceeds the upload size limit.",
        "suggestion": "💡 Try uploading a sample of your data, or export just the columns you need."
    },
    ErrorCodes.UPLOAD_IN_PROGRESS: {
        "message": "Hang on, we're still working on your last file",
        "detail": "Only one file can be analyzed at a time.",
        "suggestion": "💡 Wait for the current upload to finish, then try again."
    },
    ErrorCodes.TRANSPORT_FAILURE: {
        "message": "We couldn't reach the DataNova engine",
        "detail": "The analysis service didn't answer or returned an error.",
        "suggestion": "💡 Check your connection and try again in a moment. Your current dataset is still here."
    },
    ErrorCodes.MALFORMED_RESPONSE: {
        "message": "The analysis service sent something we couldn't read",
        "detail": "The response wasn't in the format we expected.",
        "suggestion": "💡 Give it another try. Your current dataset hasn't been touched."
    },
    ErrorCodes.VALIDATION_ERROR: {
        "message": "That chart configuration doesn't work",
        "detail": "The chart settings don't match your dataset.",
        "suggestion": "💡 Double-check the chart type and the columns bound to each axis."
    },
    ErrorCodes.UNKNOWN_CHART_TYPE: {
        "message": "We don't know that chart type",
        "detail": "Supported chart types are bar, line, pie and scatter.",
        "suggestion": "💡 Pick one of the chart types from the list."
    },
    ErrorCodes.MISSING_AXIS: {
        "message": "This chart needs another axis",
        "detail": "A required axis hasn't been bound to a column yet.",
        "suggestion": "💡 Bar, line and scatter charts need both an X and a Y column. Pie charts only need X."
    },
    ErrorCodes.UNKNOWN_COLUMN: {
        "message": "That column isn't in your dataset",
        "detail": "One of the axes refers to a column we couldn't find.",
        "suggestion": "💡 Pick the column from the list of columns in your dataset."
    },
    ErrorCodes.TYPE_MISMATCH: {
        "message": "This axis needs numbers",
        "detail": "The Y axis of a bar, line or scatter chart must be a numeric column.",
        "suggestion": "💡 Pick a numeric column for the Y axis, or switch to a pie chart."
    },
    ErrorCodes.INVALID_STYLE: {
        "message": "Those style settings look off",
        "detail": "The chart style couldn't be applied.",
        "suggestion": "💡 Colors must be hex values like #F97316."
    },
    ErrorCodes.CHART_STATE_ERROR: {
        "message": "One step at a time",
        "detail": "That action isn't available for the chart right now.",
        "suggestion": "💡 Pick a chart type first, and wait for a pending chart to finish."
    },
    ErrorCodes.NO_ACTIVE_SESSION: {
        "message": "No active dataset",
        "detail": "There's no dataset loaded yet.",
        "suggestion": "💡 Upload a CSV file on the Dashboard first."
    },
    ErrorCodes.REGENERATION_ERROR: {
        "message": "We couldn't re-shape your summary",
        "detail": "Regenerating the summary failed. Your previous summary is still available.",
        "suggestion": "💡 Try again in a moment, or pick a different tone."
    },
    ErrorCodes.UNSUPPORTED_EXPORT: {
        "message": "We can't export that",
        "detail": "The requested export isn't available.",
        "suggestion": "💡 Exports come as TXT, JSON, Markdown, PNG or PDF. Chart images can be saved once a chart has been rendered."
    },
    ErrorCodes.UNKNOWN_ERROR: {
        "message": "Hmm, something unexpected happened",
        "detail": "We encountered an issue we weren't expecting. Don't worry - it's not your fault!",
        "suggestion": "💡 Give it another try in a moment."
    }
}

def get_error_response(error_code: str, additional_detail: Optional[str] = None) -> Dict[str, str]:
    """
    Get user-friendly error response for an error code.

    Args:
        error_code: One of the ErrorCodes constants
        additional_detail: Optional additional detail to append

    Returns:
        Dictionary with message, detail, and suggestion
    """
    error_info = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCodes.UNKNOWN_ERROR])

    response = {
        "code": error_code,
        "message": error_info["message"],
        "detail": error_info["detail"],
        "suggestion": error_info["suggestion"]
    }

    if additional_detail:
        response["detail"] = f"{response['detail']} {additional_detail}"

    return response


class WorkflowError(Exception):
    """
    Base class for every non-fatal workflow failure.

    Each subclass carries an error code from ErrorCodes and the HTTP status
    the local API answers with. The prior session state is always preserved
    when one of these is raised.
    """
    code = ErrorCodes.UNKNOWN_ERROR
    status_code = 500

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(detail or self.code)

    def to_response(self) -> Dict[str, str]:
        return get_error_response(self.code, self.detail)


class InvalidFileType(WorkflowError):
    code = ErrorCodes.INVALID_FILE_TYPE
    status_code = 400


class EmptyFile(WorkflowError):
    code = ErrorCodes.FILE_EMPTY
    status_code = 400


class FileTooLarge(WorkflowError):
    code = ErrorCodes.FILE_TOO_LARGE
    status_code = 413


class UploadInProgress(WorkflowError):
    code = ErrorCodes.UPLOAD_IN_PROGRESS
    status_code = 409


class TransportFailure(WorkflowError):
    """Network or HTTP-level failure talking to the analysis service."""
    code = ErrorCodes.TRANSPORT_FAILURE
    status_code = 502

    def __init__(self, detail: Optional[str] = None, upstream_status: Optional[int] = None):
        self.upstream_status = upstream_status
        super().__init__(detail)


class MalformedResponse(WorkflowError):
    """The service answered, but not with a JSON object we can normalize."""
    code = ErrorCodes.MALFORMED_RESPONSE
    status_code = 502


class ChartValidationError(WorkflowError):
    """A chart configuration was rejected before any service call."""
    code = ErrorCodes.VALIDATION_ERROR
    status_code = 400


class UnknownChartType(ChartValidationError):
    code = ErrorCodes.UNKNOWN_CHART_TYPE


class MissingAxis(ChartValidationError):
    code = ErrorCodes.MISSING_AXIS


class UnknownColumn(ChartValidationError):
    code = ErrorCodes.UNKNOWN_COLUMN


class TypeMismatch(ChartValidationError):
    code = ErrorCodes.TYPE_MISMATCH


class InvalidStyle(ChartValidationError):
    code = ErrorCodes.INVALID_STYLE


class ChartStateError(WorkflowError):
    code = ErrorCodes.CHART_STATE_ERROR
    status_code = 409


class NoActiveSession(WorkflowError):
    code = ErrorCodes.NO_ACTIVE_SESSION
    status_code = 404


class RegenerationError(WorkflowError):
    code = ErrorCodes.REGENERATION_ERROR
    status_code = 502
