"""Application errors and their HTTP mapping.

Each error carries the status code and machine-readable code sent to the
client. The exception handler in ``main.py`` renders them as
``{"detail": message, "code": code}``.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors reported to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internalError"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# --- Input validation ---


class InvalidEmailError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalidEmail"
    message = "The email is not valid"


class PasswordTooShortError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "passwordTooShort"
    message = "The password is too short"


class MissingParameterError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "missingParameter"
    message = "Your request is not valid"


class InvalidFolderNameError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalidFolderName"
    message = "Folder name is not valid"


# --- Account state / credentials ---


class UserAlreadyExistsError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "userAlreadyExists"
    message = "The email already exists"


class UserNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "userNotFound"
    message = "User not found"


class InvalidCredentialsError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalidCredentials"
    message = "Invalid credentials"


class AccountNotActivatedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "accountNotActivated"
    message = "The account is not activated"


class MalformedActivationTokenError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "malformedToken"
    message = "The verification failed, please try again"


class InvalidActivationTokenError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalidActivationToken"
    message = "Invalid activation token"


class MalformedResetTokenError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "malformedToken"
    message = "Invalid token format"


class InvalidResetTokenError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalidToken"
    message = "Invalid token for password update"


class InvalidRefreshTokenError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "renewRefreshToken"
    message = "The refresh token is not valid"


# --- Bearer token guard ---


class MissingAuthorizationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "missingAuthorization"
    message = "No authorization token in the request header"


class MissingTokenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "noTokenProvided"
    message = "No JWT token was provided"


class AccessTokenExpiredError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "jwtExpired"
    message = "The access token has expired"


class InvalidAccessTokenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "invalidToken"
    message = "The access token is not valid"


class ClaimsNotExistError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "claimsNotExist"
    message = "Error retrieving the claims from the JWT"


# --- Folders ---


class FolderAlreadyExistsError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "folderAlreadyExists"
    message = "The folder already exists"


class FolderNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "folderNotFound"
    message = "Folder not found"


class InvalidFolderPasswordError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalidFolderPassword"
    message = "The folder password is not correct"


# --- Infrastructure ---


class RegistrationEmailError(AppError):
    code = "activationEmailFailed"
    message = "We couldn't send the email at the specified address"


class ResetEmailError(AppError):
    code = "resetEmailFailed"
    message = "Error sending password renewal email"


class StorageError(AppError):
    code = "storageError"
    message = "Error accessing folder storage"
