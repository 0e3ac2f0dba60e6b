from typing import Optional
import uuid
from datetime import datetime, timedelta

import jwt
from loguru import logger
from sqlmodel import Session, select
from fastapi import HTTPException, status

from app.core.config import settings
from app.db.schema import User, Organization, OrgType, UserRole
from app.models.auth import Token, TokenData
from app.models.user import UserCreate, AdminCreate
from .password import get_password_hash, verify_password


class UserService:
    ALGORITHM = "HS256"

    def __init__(self, session: Session):
        self.session = session

    def _create_jwt(self, subject: str, expires_delta: timedelta, type: str) -> str:
        """Helper to sign JWTs with specific types."""
        to_encode = {
            "sub": str(subject),
            "exp": datetime.utcnow() + expires_delta,
            "type": type
        }
        return jwt.encode(to_encode, settings.secret_key, algorithm=self.ALGORITHM)

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        statement = select(User).where(User.id == user_id)
        return self.session.exec(statement).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return self.session.exec(statement).first()

    def create_user(self, user_in: UserCreate) -> User:
        """
        Registers a user inside an existing, active organization.
        The user's org_type mirrors the organization's type.
        """
        # 1. Check User Existence
        if self.get_user_by_email(user_in.email):
            raise ValueError("A user with this email already exists.")

        # 2. Check Organization
        organization = self.session.get(Organization, user_in.organization_id)
        if not organization or not organization.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Organization not found."
            )
        if organization.type == OrgType.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Users cannot self-register into the administrative organization."
            )

        try:
            new_user = User(
                organization_id=organization.id,
                email=user_in.email,
                hashed_password=get_password_hash(user_in.password),
                first_name=user_in.first_name,
                last_name=user_in.last_name,
                phone=user_in.phone,
                role=UserRole.USER,
                org_type=organization.type,
                is_active=True
            )
            self.session.add(new_user)
            self.session.commit()
            self.session.refresh(new_user)

            logger.info(f"Registration successful for {new_user.email}")
            return new_user

        except Exception as e:
            self.session.rollback()
            logger.error(f"Registration failed: {str(e)}")
            raise e

    def create_admin(self, data: AdminCreate) -> User:
        """Creates an ADMIN user. Callers must already be super admins."""
        if self.get_user_by_email(data.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists."
            )

        if data.organization_id:
            organization = self.session.get(Organization, data.organization_id)
        else:
            organization = self.session.exec(
                select(Organization).where(Organization.type == OrgType.ADMIN)
            ).first()

        if not organization:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Organization not found."
            )

        admin = User(
            organization_id=organization.id,
            email=data.email,
            hashed_password=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=UserRole.ADMIN,
            org_type=organization.type,
            is_active=True,
            is_verified=True
        )
        self.session.add(admin)
        self.session.commit()
        self.session.refresh(admin)

        logger.info(f"Admin account created: {admin.email}")
        return admin

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Verify email and password hash."""
        user = self.get_user_by_email(email.lower())
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def record_login(self, user: User) -> User:
        user.last_login = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def generate_access_token(self, user: User) -> str:
        return self._create_jwt(
            subject=user.id,
            expires_delta=timedelta(
                minutes=settings.access_token_expire_minutes),
            type="access"
        )

    def generate_refresh_token(self, user: User) -> str:
        return self._create_jwt(
            subject=user.id,
            expires_delta=timedelta(
                minutes=settings.refresh_token_expire_minutes),
            type="refresh"
        )

    def generate_tokens(self, user: User) -> Token:
        return Token(
            access_token=self.generate_access_token(user),
            refresh_token=self.generate_refresh_token(user),
            token_type="bearer"
        )

    def _verify_token(self, token: str, expected_type: str) -> Optional[TokenData]:
        try:
            payload = jwt.decode(token, settings.secret_key,
                                 algorithms=[self.ALGORITHM])
            user_id = payload.get("sub")
            token_type = payload.get("type")

            if not user_id or token_type != expected_type:
                return None

            return TokenData(user_id=uuid.UUID(user_id))
        except (jwt.PyJWTError, ValueError):
            return None

    def verify_access_token(self, token: str) -> Optional[TokenData]:
        return self._verify_token(token, "access")

    def verify_refresh_token(self, token: str) -> Optional[TokenData]:
        return self._verify_token(token, "refresh")

    def validate_user(self, user_id: uuid.UUID) -> Optional[User]:
        """Retrieves user and checks is_active flag."""
        user = self.get_user_by_id(user_id)
        if not user or not user.is_active:
            return None
        return user

    def refresh_session(self, refresh_token: str) -> str:
        """
        Exchange a valid refresh token for a new access token.
        Strictly validates the user state before issuing.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        # 1. Verify Token Signature & Type
        token_data = self.verify_refresh_token(refresh_token)
        if not token_data:
            raise credentials_exception

        # 2. Verify User Exists & Is Active
        user = self.validate_user(token_data.user_id)
        if not user:
            raise credentials_exception

        # 3. Issue New Access Token
        return self.generate_access_token(user)
