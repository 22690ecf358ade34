"""Auth routes: register, login, me."""

import logging

from fastapi import APIRouter, Depends, status

from slotmatch.auth import authenticate, create_token, get_current_user, hash_password
from slotmatch.config import Config
from slotmatch.database import Database
from slotmatch.dependencies import get_config, get_db
from slotmatch.errors import ConflictError, PersistenceError, ValidationError
from slotmatch.models import User, UserLogin, UserRegister

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reg", status_code=status.HTTP_201_CREATED)
async def register(req: UserRegister, db: Database = Depends(get_db)):
    if not req.email.strip() or not req.password:
        raise ValidationError("Email and password are required.")
    if db.get_user_by_email(req.email):
        raise ConflictError("User already exists.")

    user_dict = req.model_dump(exclude={"password"})
    user_dict["password_hash"] = hash_password(req.password)
    try:
        user_id = db.insert_user(user_dict)
    except PersistenceError as e:
        # Lost a race with a concurrent registration of the same email.
        if db.get_user_by_email(req.email):
            raise ConflictError("User already exists.") from e
        raise

    user = User(**db.get_user_by_id(user_id))
    log.info("Registered user %s", user.id)
    return {"message": "User registered successfully.", "user": user.model_dump()}


@router.post("/login")
async def login(req: UserLogin, cfg: Config = Depends(get_config), db: Database = Depends(get_db)):
    row = authenticate(db, req.email, req.password)
    token = create_token(cfg, row["id"], row["email"])
    return {"message": "Login successful.", "token": token}


@router.get("/me")
async def me(current_user: dict = Depends(get_current_user)):
    return User(**current_user).model_dump()
