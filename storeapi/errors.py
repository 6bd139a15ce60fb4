class ServiceError(Exception):
    """Base for errors that map straight onto an HTTP response."""

    status_code = 500
    kind = "internal_failure"

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message, "kind": self.kind}


class InvalidRequest(ServiceError):
    status_code = 400
    kind = "invalid_request"


class NotFound(ServiceError):
    status_code = 404
    kind = "not_found"


class SignatureMismatch(ServiceError):
    status_code = 400
    kind = "signature_mismatch"


class AlreadyProcessed(ServiceError):
    status_code = 400
    kind = "already_processed"


class InternalFailure(ServiceError):
    pass


class OrderError(ServiceError):
    """Order endpoints wrap errors in the {success, error} envelope."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.status_code = status_code
        self.kind = {404: "not_found", 500: "internal_failure"}.get(
            status_code, "invalid_request"
        )

    def to_dict(self):
        return {"success": False, **super().to_dict()}
