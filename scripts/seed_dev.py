#!/usr/bin/env python
"""Seed a development database with demo users, collections and media.

Creates the schema if needed, then seeds two users who share a collection,
so the anonymous, reader and collaborator views can be tried by hand.

Constraints:
- Refuses to run in staging or prod (MEDIASHELF_ENV check)
- Skips seeding when the demo owner already has collections
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/seed_dev.py
"""

import os
import sys

DEMO_OWNER_ID = "demo-owner"
DEMO_FRIEND_ID = "demo-friend"


def main():
    # 1. Environment check (hard fail in staging/prod)
    env = os.getenv("MEDIASHELF_ENV", "local")
    if env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in MEDIASHELF_ENV={env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from sqlalchemy import select

    from mediashelf.db.engine import get_engine, init_schema
    from mediashelf.db.models import Collection, CollectionRole, MediaType, Visibility
    from mediashelf.db.session import session_scope
    from mediashelf.schemas.media import CreateMediaRequest
    from mediashelf.services.collections import create_collection
    from mediashelf.services.invitations import invite_member, respond_to_invitation
    from mediashelf.services.media import create_media
    from mediashelf.services.users import ensure_user

    init_schema(get_engine())

    with session_scope() as db:
        existing = db.execute(
            select(Collection.id).where(Collection.owner_id == DEMO_OWNER_ID)
        ).first()
        if existing is not None:
            print("Demo data already present, nothing to do")
            return

        # 3. Users
        ensure_user(db, DEMO_OWNER_ID, email="owner@example.com", name="Demo Owner")
        ensure_user(db, DEMO_FRIEND_ID, email="friend@example.com", name="Demo Friend")

        # 4. A public list and a shared private list
        public = create_collection(
            db, DEMO_OWNER_ID, "Sci-fi classics", tags=["sci-fi"], visibility=Visibility.PUBLIC
        )
        shared = create_collection(db, DEMO_OWNER_ID, "Movie night", tags=["weekend"])

        for position, (title, media_type, tags) in enumerate(
            [
                ("Solaris", MediaType.FILM, ["sci-fi", "drama"]),
                ("The Left Hand of Darkness", MediaType.BOOK, ["sci-fi"]),
                ("Dark", MediaType.SERIES, ["sci-fi", "mystery"]),
            ]
        ):
            create_media(
                db,
                DEMO_OWNER_ID,
                CreateMediaRequest(
                    title=title,
                    type=media_type,
                    tags=tags,
                    collection_id=public.id,
                    position=position,
                ),
            )

        create_media(
            db,
            DEMO_OWNER_ID,
            CreateMediaRequest(title="Paddington 2", type=MediaType.FILM, collection_id=shared.id),
        )

        # 5. Share the private list with the friend as collaborator
        invite_member(db, DEMO_OWNER_ID, shared.id, DEMO_FRIEND_ID, CollectionRole.COLLABORATOR)
        respond_to_invitation(db, DEMO_FRIEND_ID, shared.id, accept=True)

        print(f"Seeded public collection {public.id} and shared collection {shared.id}")


if __name__ == "__main__":
    main()
