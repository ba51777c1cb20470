"""Administrative commands for the Nyumba Connect server."""
import argparse
import getpass
from typing import List, Optional

from sqlalchemy.orm import Session

from .auth import hash_password
from .config import BCRYPT_ROUNDS
from .database import Base, SessionLocal, engine
from .logging_config import configure_logging
from .models import User

logger = configure_logging()

MIN_PASSWORD_LENGTH = 10


def create_admin(db: Session, login: str, name: str, password: str, rounds: int = BCRYPT_ROUNDS) -> User:
    """Create an administrator account; self-registration cannot grant this role."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if db.query(User).filter(User.login == login).first():
        raise ValueError(f"Login already exists: {login}")
    user = User(login=login, name=name, password_hash=hash_password(password, rounds=rounds), role="admin")
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("ADMIN_CREATED login=%s user_id=%s", login, user.id)
    return user


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Nyumba Connect administrator account.")
    parser.add_argument("login")
    parser.add_argument("name")
    args = parser.parse_args(argv)

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        parser.error("passwords do not match")

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = create_admin(db, args.login, args.name, password)
    except ValueError as exc:
        parser.error(str(exc))
    finally:
        db.close()
    print(f"Created administrator {user.login} (id {user.id})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
