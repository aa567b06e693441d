from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vlog.database import Base


# ---------------------------------------------------------------------------
# Shared timestamp columns
# ---------------------------------------------------------------------------
class TimestampMixin:
    # Fetch store-generated timestamps right after INSERT/UPDATE so they can
    # be serialised without a lazy refresh on an async session.
    __mapper_args__ = {"eager_defaults": True}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    nickname: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    # bcrypt hash, never the raw credential
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships: lazy="noload" enforces explicit eager loading in services
    blog: Mapped[Optional["Blog"]] = relationship(
        "Blog", back_populates="user", uselist=False, lazy="noload"
    )


# ---------------------------------------------------------------------------
# Blog (exactly one per user)
# ---------------------------------------------------------------------------
class Blog(TimestampMixin, Base):
    __tablename__ = "blogs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="blog", lazy="noload")
    posts: Mapped[List["Post"]] = relationship("Post", back_populates="blog", lazy="noload")


# ---------------------------------------------------------------------------
# Tag
# ---------------------------------------------------------------------------
class Tag(TimestampMixin, Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Unique so that concurrent get-or-create calls collide in the store
    # instead of producing two rows with the same title.
    title: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)

    @classmethod
    def create(cls, title: str) -> "Tag":
        return cls(title=title)


# ---------------------------------------------------------------------------
# Post
# ---------------------------------------------------------------------------
class Post(TimestampMixin, Base):
    __tablename__ = "posts"

    __table_args__ = (
        # Blog feed sorted by date
        Index("ix_posts_blog_id_created_at", "blog_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    blog_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships: all lazy="noload" to prevent N+1; use selectinload/joinedload in services
    blog: Mapped["Blog"] = relationship("Blog", back_populates="posts", lazy="noload")
    tag_maps: Mapped[List["TagMap"]] = relationship(
        "TagMap",
        back_populates="post",
        lazy="noload",
        order_by="TagMap.id",
        # Mappings are removed with a bulk DELETE before the post itself.
        passive_deletes="all",
    )

    @classmethod
    def create(cls, title: str, content: str, blog: Blog) -> "Post":
        return cls(title=title, content=content, blog=blog, blog_id=blog.id, view_count=0)

    def update(self, title: str, content: str) -> None:
        self.title = title
        self.content = content


# ---------------------------------------------------------------------------
# TagMap: Post <-> Tag join row
# ---------------------------------------------------------------------------
class TagMap(TimestampMixin, Base):
    __tablename__ = "tag_maps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True
    )

    post: Mapped["Post"] = relationship("Post", back_populates="tag_maps", lazy="noload")
    tag: Mapped["Tag"] = relationship("Tag", lazy="noload")

    @classmethod
    def create(cls, post: Post, tag: Tag) -> "TagMap":
        return cls(post_id=post.id, tag_id=tag.id, tag=tag)


# ---------------------------------------------------------------------------
# Like: one row per (user, post)
# ---------------------------------------------------------------------------
class Like(TimestampMixin, Base):
    __tablename__ = "likes"

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    @classmethod
    def create(cls, user: User, post: Post) -> "Like":
        return cls(user_id=user.id, post_id=post.id)


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # NULL for top-level comments; replies are stored but not traversed.
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )

    author: Mapped["User"] = relationship("User", lazy="noload")


# ---------------------------------------------------------------------------
# Follow (modelled only)
# ---------------------------------------------------------------------------
class Follow(TimestampMixin, Base):
    __tablename__ = "follows"

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    following_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
