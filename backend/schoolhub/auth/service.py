"""Authentication service: credentials, signed tokens and the current principal."""

import logging
from datetime import datetime, timedelta, UTC
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from google.auth.exceptions import GoogleAuthError, TransportError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from ..errors import Conflict, Internal, Unauthenticated
from ..models import User, UserRole
from ..schemas.user import RegisterRequest
from ..security.principal import Principal
from ..services.users import apply_profile
from .models import FederatedIdentity, TokenData

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

FIREBASE_ISSUER = "https://securetoken.google.com"


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def create_access_token(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Sign a token carrying the user's id and role."""
        expire = datetime.now(UTC) + (expires_delta or self.settings.jwt_expire)
        to_encode = {"id": user.id, "role": user.role.value, "exp": expire}
        return jwt.encode(to_encode, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def verify_token(self, token: Optional[str]) -> TokenData:
        """Verify and decode a JWT token."""
        if not token:
            raise Unauthenticated()
        try:
            payload = jwt.decode(token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm])
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            raise Unauthenticated()
        user_id = payload.get("id")
        role = payload.get("role")
        if not user_id or not role:
            raise Unauthenticated()
        return TokenData(user_id=user_id, role=role)

    def user_from_token(self, token: Optional[str]) -> User:
        data = self.verify_token(token)
        user = self.db.get(User, data.user_id)
        if user is None:
            logger.info(f"Token subject {data.user_id} no longer exists")
            raise Unauthenticated()
        return user

    def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate a user with email and password."""
        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user or not user.verify_password(password):
            raise Unauthenticated("Invalid credentials")
        return user

    def register_user(self, data: RegisterRequest) -> User:
        """Register a new user."""
        if self.db.query(User).filter(User.email == data.email).first():
            raise Conflict("Email already registered", {"email": data.email})
        user = User(email=data.email, role=data.role, first_name=data.first_name, last_name=data.last_name)
        user.set_password(data.password)
        apply_profile(self.db, user, data)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Registered {user.role.value} {user.id}")
        return user

    def verify_federated_token(self, id_token: str) -> FederatedIdentity:
        """Verify a Firebase id-token's signature, audience and issuer."""
        project_id = self.settings.firebase_project_id
        if not project_id:
            raise Internal("Federated sign-in is not configured")
        try:
            claims = google_id_token.verify_firebase_token(id_token, google_requests.Request(), audience=project_id)
        except TransportError as e:
            logger.warning(f"Federated token verification failed: {e}")
            raise Unauthenticated("Could not verify federated credential")
        except (ValueError, GoogleAuthError) as e:
            logger.info(f"Rejected federated token: {e}")
            raise Unauthenticated("Invalid federated credential")
        if not claims or claims.get("iss") != f"{FIREBASE_ISSUER}/{project_id}":
            logger.warning(f"Federated token from unexpected issuer {(claims or {}).get('iss')}")
            raise Unauthenticated("Invalid federated credential")
        uid = claims.get("sub") or claims.get("user_id")
        if not uid:
            raise Unauthenticated("Invalid federated credential")
        return FederatedIdentity(uid=uid, email=claims.get("email"), name=claims.get("name"),
                                 picture=claims.get("picture"))

    def federated_sign_in(self, id_token: str) -> User:
        """Resolve a federated identity to a user, provisioning a student on first sign-in.

        Accounts are matched by federated uid only; an email that already
        belongs to another account is a conflict.
        """
        identity = self.verify_federated_token(id_token)
        user = self.db.query(User).filter(User.federated_uid == identity.uid).first()
        if user is not None:
            return user
        if not identity.email:
            raise Unauthenticated("Federated credential carries no email")
        email = identity.email.lower()
        if self.db.query(User).filter(User.email == email).first():
            raise Conflict("Email already registered", {"email": email})

        first, _, last = (identity.name or email.split("@")[0]).partition(" ")
        user = User(
            email=email,
            federated_uid=identity.uid,
            role=UserRole.student,
            first_name=first[:50] or "Student",
            last_name=last[:50] or "-",
            profile_image=identity.picture or "default-profile.jpg",
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Provisioned student {user.id} from federated identity")
        return user


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency to get an instance of AuthService."""
    return AuthService(db)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Dependency to get the current user from the bearer token."""
    return AuthService(db).user_from_token(token)


def get_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(user)
