"""Error classifiers for outbound calls.

Converts exceptions raised by the HTTP client (httpx, used by translation
providers) and the AWS SDK (DynamoDB persistence) into OperationResult
values, so callers compose explicit results instead of exception chains.

Usage:
    from infrastructure.operations.classifiers import classify_http_error

    try:
        response = await client.post(url, json=body)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        return classify_http_error(exc, service="deepl")
"""

from typing import Optional

import httpx
from botocore.exceptions import ClientError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def _retry_after_seconds(response: httpx.Response, default: int = 60) -> int:
    header_value = response.headers.get("retry-after")
    if not header_value:
        return default
    try:
        return int(header_value)
    except (ValueError, TypeError):
        return default


def classify_http_error(exc: Exception, service: str = "http") -> OperationResult:
    """Classify httpx errors into OperationResult.

    Status Code Mapping:
    - timeouts: TRANSIENT_ERROR with ``timeout`` code
    - transport errors: TRANSIENT_ERROR (connection refused, DNS, reset)
    - 429: TRANSIENT_ERROR with retry_after
    - 401/403: UNAUTHORIZED (bad or missing API key)
    - 404: NOT_FOUND
    - 456 (DeepL quota exceeded) and 5xx: TRANSIENT_ERROR
    - other 4xx: PERMANENT_ERROR

    Args:
        exc: Exception raised while talking to the remote service
        service: Service name used in messages

    Returns:
        OperationResult with status, message, error_code and retry_after
    """
    if isinstance(exc, httpx.TimeoutException):
        return OperationResult.transient_error(
            f"{service} request timed out", error_code="timeout"
        )

    if not isinstance(exc, httpx.HTTPStatusError):
        return OperationResult.transient_error(
            f"{service} connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    status_code: Optional[int] = exc.response.status_code

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{service} rate limited",
            error_code="RATE_LIMITED",
            retry_after=_retry_after_seconds(exc.response),
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{service} rejected the credentials ({status_code})",
            error_code="UNAUTHORIZED",
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{service} endpoint not found",
            error_code="NOT_FOUND",
        )

    if status_code == 456 or (status_code and 500 <= status_code < 600):
        return OperationResult.transient_error(
            f"{service} server error ({status_code})",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{service} client error ({status_code})",
        error_code="HTTP_ERROR",
    )


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - ConditionalCheckFailedException: PERMANENT_ERROR ``CONDITION_FAILED``
      (a compare-and-set lost its race)
    - ProvisionedThroughputExceededException / ThrottlingException:
      TRANSIENT_ERROR with retry_after
    - AccessDeniedException: UNAUTHORIZED
    - ResourceNotFoundException: NOT_FOUND (missing table)
    - ValidationException: PERMANENT_ERROR
    - Other: TRANSIENT_ERROR (AWS convention)

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        OperationResult with appropriate status and error_code
    """
    if not isinstance(exc, ClientError):
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    error_code = exc.response.get("Error", {}).get("Code", "Unknown")

    if error_code == "ConditionalCheckFailedException":
        return OperationResult.permanent_error(
            "Conditional write rejected", error_code="CONDITION_FAILED"
        )

    if error_code in ("ThrottlingException", "ProvisionedThroughputExceededException"):
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=5,
        )

    if error_code == "AccessDeniedException":
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            "AWS API access denied",
            error_code="FORBIDDEN",
        )

    if error_code == "ResourceNotFoundException":
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            "AWS resource not found",
            error_code="NOT_FOUND",
        )

    if error_code in ("ValidationException", "InvalidParameterException"):
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}",
            error_code="INVALID_REQUEST",
        )

    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )
