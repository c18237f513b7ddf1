"""Database seeder for local development of the blog GraphQL API."""
import asyncio
import argparse
import random
import time

from blogql.config import settings
from blogql.database import engine, async_session, Base
from blogql.models import User, Post, Comment
from blogql.security import Credentials

TOPICS = ["python", "fastapi", "postgresql", "graphql", "docker", "testing",
          "performance", "security", "sqlalchemy", "asyncio"]

DEMO_PASSWORD = "password123"


async def seed(small: bool = False):
    num_users = 5 if small else 50
    num_posts = 20 if small else 2000
    max_comments_per_post = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_comments_per_post} comments each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Every demo user shares one password; hash it once.
    credentials = Credentials.from_settings(settings)
    password_hash = credentials.hash_password(DEMO_PASSWORD)

    async with async_session() as session:
        users = []
        for i in range(num_users):
            user = User(email=f"user_{i:04d}@example.com", password_hash=password_hash)
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users (password: {DEMO_PASSWORD!r})")

        posts = []
        for i in range(num_posts):
            topic = random.choice(TOPICS)
            post = Post(
                title=f"Post {i}: notes on {topic}",
                content=f"This is the full content of post {i} about {topic}. " * 10,
                author_id=random.choice(users).id,
            )
            session.add(post)
            posts.append(post)
        await session.flush()
        print(f"  Created {len(posts)} posts")

        total_comments = 0
        for post in posts:
            for _ in range(random.randint(0, max_comments_per_post)):
                session.add(Comment(
                    content=f"Thanks for writing about this! ({random.choice(TOPICS)})",
                    author_id=random.choice(users).id,
                    post_id=post.id,
                ))
                total_comments += 1
        await session.flush()

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (20 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
