"""
Domain exceptions raised by the service layer.

Services raise these at the point of detection and never catch them; the
handler registered in ``vlog.main`` turns them into JSON error responses
with the status code carried by each class.
"""


class AppError(Exception):
    """Base class for every error that maps to a client-facing response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.code.replace("_", " ").capitalize()
        super().__init__(self.message)


class NotFoundError(AppError):
    """
    An id did not resolve.

    *subject* names what was missing (``"post"``, ``"user"``, ``"blog"``,
    ``"comment"``) so callers can tell "post missing" apart from "you have
    no blog".
    """

    status_code = 404

    def __init__(
        self,
        subject: str,
        identifier: int | str | None = None,
        message: str | None = None,
    ) -> None:
        self.subject = subject
        self.identifier = identifier
        self.code = f"{subject}_not_found"
        if message is None:
            if identifier is not None:
                message = f"{subject.capitalize()} {identifier} not found"
            else:
                message = f"{subject.capitalize()} not found"
        super().__init__(message)

    @classmethod
    def blog_of_user(cls, user_id: int) -> "NotFoundError":
        return cls("blog", user_id, message=f"User {user_id} has no blog")


class ForbiddenError(AppError):
    """The acting user does not own the resource it tried to mutate."""

    status_code = 403
    code = "forbidden"

    def __init__(self, action: str, message: str | None = None) -> None:
        self.action = action
        super().__init__(message or f"Only the author may {action} this post")


class ConflictError(AppError):
    status_code = 409
    code = "conflict"


class AuthenticationRequiredError(AppError):
    status_code = 401
    code = "authentication_required"
