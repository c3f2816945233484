"""Seed a newsdesk database with sample accounts, categories, tags and articles."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from newsdesk.database import async_session, create_schema, engine
from newsdesk.identity import Role
from newsdesk.models import Account, Category, NewsArticle, Tag, news_tags
from newsdesk.security import hash_password

ACCOUNTS = [
    ("Administrator", "admin@newsdesk.local", Role.ADMIN),
    ("Sam Staff", "staff@newsdesk.local", Role.STAFF),
    ("Riley Reporter", "reporter@newsdesk.local", Role.STAFF),
    ("Lee Lecturer", "lecturer@newsdesk.local", Role.LECTURER),
]

# (name, description, parent name)
CATEGORIES = [
    ("Campus", "News from around the campus", None),
    ("Academics", "Courses, programmes and results", None),
    ("Events", "Upcoming and past events", "Campus"),
    ("Research", "Research groups and publications", "Academics"),
    ("Admissions", "Admission rounds and scholarships", "Academics"),
    ("Sports", "Teams, fixtures and results", "Campus"),
]

TAGS = ["announcement", "exam", "scholarship", "seminar", "workshop",
        "sports", "research", "alumni", "library", "career"]


async def seed(articles: int = 50, password: str = "password123"):
    print(f"Seeding: {len(ACCOUNTS)} accounts, {len(CATEGORIES)} categories, "
          f"{len(TAGS)} tags, {articles} articles")
    start = time.perf_counter()

    await create_schema(engine, drop_first=True)

    async with async_session() as session:
        password_hash = hash_password(password)
        accounts = [
            Account(name=name, email=email, password_hash=password_hash, role=int(role))
            for name, email, role in ACCOUNTS
        ]
        session.add_all(accounts)
        await session.flush()
        authors = [a for a in accounts if a.role in (Role.ADMIN, Role.STAFF)]
        print(f"  Created {len(accounts)} accounts (password: {password})")

        by_name: dict[str, Category] = {}
        for name, description, parent in CATEGORIES:
            category = Category(
                name=name,
                description=description,
                parent_id=by_name[parent].id if parent else None,
                is_active=True,
            )
            session.add(category)
            await session.flush()
            by_name[name] = category
        print(f"  Created {len(by_name)} categories")

        tags = [Tag(name=name, note=f"Articles about {name}") for name in TAGS]
        session.add_all(tags)
        await session.flush()
        print(f"  Created {len(tags)} tags")

        links = []
        for i in range(1, articles + 1):
            created = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 120))
            category = random.choice(list(by_name.values()))
            session.add(NewsArticle(
                id=str(i),
                title=f"{category.name} update #{i}",
                headline=f"What is new in {category.name.lower()} this week ({i})",
                content=f"Full story number {i} about {category.description.lower()}. " * 10,
                source="Newsdesk",
                category_id=category.id,
                status=random.random() > 0.2,  # 80% published
                created_at=created,
                created_by_id=random.choice(authors).id,
            ))
            for tag in random.sample(tags, k=random.randint(1, 3)):
                links.append({"news_article_id": str(i), "tag_id": tag.id})
        await session.flush()

        await session.execute(news_tags.insert(), links)
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Articles: {articles}")
    print(f"  Article/tag links: {len(links)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the newsdesk database")
    parser.add_argument("--articles", type=int, default=50, help="Number of articles to create")
    parser.add_argument("--password", default="password123", help="Password for every seeded account")
    args = parser.parse_args()
    asyncio.run(seed(articles=args.articles, password=args.password))


if __name__ == "__main__":
    main()
