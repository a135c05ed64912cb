"""
In-memory records for the demo controllers.

Not persistent and not shared between worker processes. reset() restores
the seed data.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    id: int
    name: str
    email: str
    age: Optional[int] = None
    created_at: datetime = Field(default_factory=_now)


class Post(BaseModel):
    id: int
    title: str
    content: str
    author_id: int
    published: bool = False
    created_at: datetime = Field(default_factory=_now)


class MemoryStore:
    """Id → record dicts with auto-increment ids."""

    def __init__(self) -> None:
        self.users: Dict[int, User] = {}
        self.posts: Dict[int, Post] = {}
        self._next_id = {"users": 1, "posts": 1}
        self.reset()

    def reset(self) -> None:
        self.users.clear()
        self.posts.clear()
        self._next_id = {"users": 1, "posts": 1}
        self.create_user({"name": "Ada Lovelace", "email": "ada@example.com", "age": 36})
        self.create_user({"name": "Alan Turing", "email": "alan@example.com", "age": 41})
        self.create_post({"title": "Notes on the Engine", "content": "Loops and cards.", "author_id": 1, "published": True})

    def _take_id(self, table: str) -> int:
        value = self._next_id[table]
        self._next_id[table] = value + 1
        return value

    # ── Users ─────────────────────────────────────────────────────────────

    def list_users(self, search: Optional[str] = None, limit: Optional[int] = None) -> List[User]:
        users = list(self.users.values())
        if search:
            needle = search.lower()
            users = [u for u in users if needle in u.name.lower() or needle in u.email.lower()]
        return users[:limit] if limit else users

    def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def create_user(self, data: Dict[str, Any]) -> User:
        user = User(id=self._take_id("users"), **data)
        self.users[user.id] = user
        return user

    def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update=data)
        self.users[user_id] = updated
        return updated

    def delete_user(self, user_id: int) -> bool:
        return self.users.pop(user_id, None) is not None

    # ── Posts ─────────────────────────────────────────────────────────────

    def list_posts(self, author_id: Optional[int] = None, published: Optional[bool] = None) -> List[Post]:
        posts = list(self.posts.values())
        if author_id is not None:
            posts = [p for p in posts if p.author_id == author_id]
        if published is not None:
            posts = [p for p in posts if p.published == published]
        return posts

    def get_post(self, post_id: int) -> Optional[Post]:
        return self.posts.get(post_id)

    def create_post(self, data: Dict[str, Any]) -> Post:
        post = Post(id=self._take_id("posts"), **data)
        self.posts[post.id] = post
        return post

    def delete_post(self, post_id: int) -> bool:
        return self.posts.pop(post_id, None) is not None


store = MemoryStore()
