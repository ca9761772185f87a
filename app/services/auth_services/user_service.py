# app/services/auth_services/user_service.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from fastapi import HTTPException
from app.models.user_models import ROLES, User
from app.core.security import hash_password
from app.schemas.user_schemas import UserCreate, UserUpdate
from app.utils.activity_helpers import log_actor_activity

MIN_PASSWORD_LENGTH = 6


def _check_role(role: str):
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Role must be one of {', '.join(ROLES)}")


def _check_password(password: str):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


# ---------------------------
# CREATE USER
# ---------------------------
async def create_user(db: AsyncSession, user_data: UserCreate, current_user):
    """
    Create a new user and log the activity in a single transaction.
    """
    try:
        existing = await db.execute(select(User).where(User.username == user_data.username))
        if existing.scalars().first():
            raise HTTPException(status_code=400, detail="Username already exists")

        _check_role(user_data.role)
        _check_password(user_data.password)

        new_user = User(
            username=user_data.username,
            password_hash=hash_password(user_data.password),
            role=user_data.role,
        )
        db.add(new_user)
        await db.flush()  # ensures new_user.id is available

        await log_actor_activity(
            db, current_user,
            f"created {new_user.role} with username {new_user.username} and user id {new_user.id}",
        )

        await db.commit()
        await db.refresh(new_user)
        return new_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error creating user: {e}")


# ---------------------------
# LIST ALL USERS
# ---------------------------
async def list_users(db: AsyncSession):
    result = await db.execute(select(User).order_by(User.id))
    return result.scalars().all()


# ---------------------------
# GET USER BY ID
# ---------------------------
async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ---------------------------
# UPDATE USER
# ---------------------------
async def update_user(db: AsyncSession, user_id: int, user_data: UserUpdate, current_user):
    try:
        target_user = await get_user_by_id(db, user_id)
        changes = []

        if user_data.username and user_data.username != target_user.username:
            existing_user_check = await db.execute(
                select(User).where(User.username == user_data.username, User.id != user_id)
            )
            if existing_user_check.scalars().first():
                raise HTTPException(status_code=400, detail="Username already exists")
            changes.append(f"username to {user_data.username}")
            target_user.username = user_data.username

        if user_data.password:
            _check_password(user_data.password)
            target_user.password_hash = hash_password(user_data.password)
            # existing sessions end with the old password
            target_user.token_version += 1
            changes.append("password")

        if user_data.role and user_data.role != target_user.role:
            _check_role(user_data.role)
            changes.append(f"role to {user_data.role}")
            target_user.role = user_data.role

        if changes:
            await log_actor_activity(
                db, current_user,
                f"updated {target_user.role} with username {target_user.username}: {', '.join(changes)}",
            )

        await db.commit()
        await db.refresh(target_user)
        return target_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error updating user: {e}")


# ---------------------------
# DELETE USER
# ---------------------------
async def delete_user(db: AsyncSession, user_id: int, current_user):
    """
    Soft-delete (deactivate) a user and log a descriptive message.
    """
    try:
        target_user = await get_user_by_id(db, user_id)
        if current_user is not None and target_user.id == current_user.id:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

        target_user.is_active = False
        target_user.token_version += 1

        await log_actor_activity(
            db, current_user, f"deactivated {target_user.role} with username {target_user.username}"
        )
        await db.commit()
        return target_user

    except HTTPException:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(status_code=500, detail=f"Error deleting user: {e}")
