import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, field_validator

import rideshare.database as _db
from rideshare.config import Config
from rideshare.database import AdminUserModel

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# cookie is the primary carrier, the header is accepted for API clients
security = HTTPBearer(auto_error=False)

class AdminRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"

class AdminUser(BaseModel):
    user_id: str
    username: str
    password_hash: str
    role: AdminRole = AdminRole.STAFF
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == AdminRole.ADMIN

    def dict_safe(self):
        return {
            "user_id": self.user_id,
            "username": self.username,
            "role": self.role,
            "created_at": self.created_at,
        }

def _to_domain(model: AdminUserModel) -> AdminUser:
    return AdminUser(
        user_id=model.user_id,
        username=model.username,
        password_hash=model.password_hash,
        role=AdminRole(model.role),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )

class AdminUserStorage:
    @staticmethod
    def save(user: AdminUser) -> None:
        with _db.SessionLocal() as session:
            session.merge(AdminUserModel(
                user_id=user.user_id,
                username=user.username,
                password_hash=user.password_hash,
                role=user.role.value,
                created_at=user.created_at,
                updated_at=user.updated_at,
            ))
            session.commit()

    @staticmethod
    def find_by_id(user_id: str) -> Optional[AdminUser]:
        with _db.SessionLocal() as session:
            model = session.get(AdminUserModel, user_id)
            return _to_domain(model) if model else None

    @staticmethod
    def get_by_username(username: str) -> Optional[AdminUser]:
        with _db.SessionLocal() as session:
            model = session.query(AdminUserModel).filter(
                AdminUserModel.username == username.strip().lower()
            ).first()
            return _to_domain(model) if model else None

    @staticmethod
    def get_all() -> List[AdminUser]:
        with _db.SessionLocal() as session:
            models = session.query(AdminUserModel).order_by(AdminUserModel.created_at.asc()).all()
            return [_to_domain(m) for m in models]

    @staticmethod
    def count() -> int:
        with _db.SessionLocal() as session:
            return session.query(AdminUserModel).count()

# ============================================================================
# JWT
# ============================================================================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=Config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, Config.SECRET_KEY, algorithm=Config.ALGORITHM)

def verify_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, Config.SECRET_KEY, algorithms=[Config.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    if payload.get("sub") is None or payload.get("user_id") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    return payload

def get_current_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AdminUser:
    token = request.cookies.get(Config.AUTH_COOKIE_NAME)
    if credentials is not None:
        token = credentials.credentials
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    payload = verify_token(token)
    # reload so role changes and removed accounts take effect immediately
    user = AdminUserStorage.find_by_id(payload["user_id"])
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    return user

def require_admin_role(current_admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    if not current_admin.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )
    return current_admin

def bootstrap_admin() -> Optional[AdminUser]:
    """Create the first admin account from the environment if none exist."""
    if not Config.ADMIN_USERNAME or not Config.ADMIN_PASSWORD:
        return None
    if AdminUserStorage.count() > 0:
        return None

    now = datetime.now()
    user = AdminUser(
        user_id=str(uuid4()),
        username=Config.ADMIN_USERNAME.strip().lower(),
        password_hash=get_password_hash(Config.ADMIN_PASSWORD),
        role=AdminRole.ADMIN,
        created_at=now,
        updated_at=now,
    )
    AdminUserStorage.save(user)
    logging.info("auth.bootstrap created admin username=%s", user.username)
    return user

# ============================================================================
# REQUEST/RESPONSE
# ============================================================================

def _check_password(v: str) -> str:
    if len(v) < 6:
        raise ValueError('Password must be at least 6 characters long')
    if len(v.encode('utf-8')) > 72:
        raise ValueError('Password is too long (max 72 bytes)')
    return v

class LoginRequest(BaseModel):
    username: str
    password: str

class CreateUserRequest(BaseModel):
    username: str
    password: str
    role: AdminRole = AdminRole.STAFF

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters long')
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)

class UpdateUserRequest(BaseModel):
    role: Optional[AdminRole] = None
    password: Optional[str] = None

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return _check_password(v) if v is not None else v

class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    expires_in: int

class UserResponse(BaseModel):
    user_id: str
    username: str
    role: AdminRole
    created_at: datetime

# ============================================================================
# ENDPOINTS
# ============================================================================

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, response: Response):
    user = AdminUserStorage.get_by_username(request.username)
    if not user or not verify_password(request.password, user.password_hash):
        logging.info("auth.login rejected username=%s", request.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password"
        )

    expires = timedelta(minutes=Config.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username, "user_id": user.user_id, "role": user.role.value},
        expires_delta=expires
    )
    response.set_cookie(
        key=Config.AUTH_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=Config.AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=int(expires.total_seconds()),
    )
    logging.info("auth.login success username=%s", user.username)

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=int(expires.total_seconds())
    )

@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(Config.AUTH_COOKIE_NAME)
    return {"message": "Logged out"}

@router.get("/me", response_model=UserResponse)
def get_me(current_admin: AdminUser = Depends(get_current_admin)):
    return UserResponse(**current_admin.dict_safe())

@router.get("/users", response_model=List[UserResponse])
def list_users(_: AdminUser = Depends(require_admin_role)):
    return [UserResponse(**u.dict_safe()) for u in AdminUserStorage.get_all()]

@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(request: CreateUserRequest, current_admin: AdminUser = Depends(require_admin_role)):
    if AdminUserStorage.get_by_username(request.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    now = datetime.now()
    user = AdminUser(
        user_id=str(uuid4()),
        username=request.username,
        password_hash=get_password_hash(request.password),
        role=request.role,
        created_at=now,
        updated_at=now,
    )
    AdminUserStorage.save(user)
    logging.info("auth.user_create success username=%s role=%s by=%s",
                 user.username, user.role.value, current_admin.username)
    return UserResponse(**user.dict_safe())

@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(user_id: str, request: UpdateUserRequest, current_admin: AdminUser = Depends(require_admin_role)):
    user = AdminUserStorage.find_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    changes = {"updated_at": datetime.now()}
    if request.role is not None:
        changes["role"] = request.role
    if request.password is not None:
        changes["password_hash"] = get_password_hash(request.password)
    user = user.model_copy(update=changes)
    AdminUserStorage.save(user)
    logging.info("auth.user_update success username=%s by=%s", user.username, current_admin.username)
    return UserResponse(**user.dict_safe())
