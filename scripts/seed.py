"""Seed the vlog database with users, blogs, tagged posts, likes and comments."""
import argparse
import asyncio
import random
import time

from sqlalchemy import func, select

from vlog.database import Base, async_session, engine
from vlog.models import Blog, Comment, Like, Post, Tag, TagMap, User
from vlog.services.user_service import hash_password

TAGS = ["python", "go", "infra", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance", "security"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_posts = 100 if small else 5000
    max_comments_per_post = 2 if small else 5

    print(f"Seeding: {num_users} users/blogs, {num_posts} posts")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        tags = [Tag.create(title) for title in TAGS]
        session.add_all(tags)
        await session.flush()
        print(f"  Created {len(tags)} tags")

        # Every seeded user shares one hash; bcrypt per user is too slow here.
        password = hash_password("password123")
        users = [
            User(email=f"user_{i:04d}@example.com", nickname=f"user_{i:04d}", password=password)
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()

        blogs = [Blog(title=f"{u.nickname}'s blog", user_id=u.id) for u in users]
        session.add_all(blogs)
        await session.flush()
        print(f"  Created {len(users)} users with blogs")

        batch_size = 500
        total_comments = total_likes = 0
        for batch_start in range(0, num_posts, batch_size):
            batch_end = min(batch_start + batch_size, num_posts)
            posts = []
            for i in range(batch_start, batch_end):
                topic = random.choice(TAGS)
                post = Post.create(
                    title=f"Post {i}: notes on {topic}",
                    content=f"This is the full content of post {i} about {topic}. " * 20,
                    blog=random.choice(blogs),
                )
                session.add(post)
                posts.append(post)
            await session.flush()

            for post in posts:
                for tag in random.sample(tags, k=random.randint(1, 4)):
                    session.add(TagMap.create(post, tag))
                for liker in random.sample(users, k=random.randint(0, min(5, num_users))):
                    session.add(Like.create(liker, post))
                    total_likes += 1
                for _ in range(random.randint(0, max_comments_per_post)):
                    session.add(Comment(
                        content="Great post, thanks for writing it up.",
                        post_id=post.id,
                        user_id=random.choice(users).id,
                    ))
                    total_comments += 1
            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: posts created")

        await session.commit()

        post_total = (await session.execute(select(func.count()).select_from(Post))).scalar_one()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Posts: {post_total}")
    print(f"  Likes: {total_likes}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the vlog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
