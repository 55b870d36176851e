"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from events_api.errors import NotFound


class DbClient(Protocol):
    """Interface for database access."""

    def get_password_hash(self) -> Optional[str]:
        ...

    def set_password_hash(self, password_hash: str) -> None:
        ...

    def list_organizations(self) -> list["OrganizationRecord"]:
        ...

    def create_organization(self, name: str, link: Optional[str] = None) -> int:
        ...

    def list_opportunities(self, organization_id: int) -> list[str]:
        ...

    def add_opportunity(self, organization_id: int, opportunity: str) -> None:
        """Raises NotFound when the organization does not exist."""
        ...

    def add_image(
        self,
        url: str,
        organization: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> "ImageRecord":
        ...

    def list_images(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list["ImageRecord"]:
        ...


@dataclass
class OrganizationRecord:
    id: int
    name: str
    link: Optional[str] = None

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "link": self.link}


@dataclass
class ImageRecord:
    id: int
    url: str
    organization: Optional[str] = None
    date: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "organization": self.organization,
            "date": self.date.isoformat() if self.date else None,
        }


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values (as SQLite returns them) are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    value = _as_utc(value)
    return value.replace(tzinfo=None) if value else None


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.password_hash: Optional[str] = None
        self.organizations: Dict[int, OrganizationRecord] = {}
        self.opportunities: list[tuple[int, str]] = []
        self.images: Dict[int, ImageRecord] = {}
        self._next_id = 1

    def _new_id(self) -> int:
        next_id = self._next_id
        self._next_id += 1
        return next_id

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.password_hash = None
        self.organizations.clear()
        self.opportunities.clear()
        self.images.clear()

    def get_password_hash(self) -> Optional[str]:
        return self.password_hash

    def set_password_hash(self, password_hash: str) -> None:
        self.password_hash = password_hash

    def list_organizations(self) -> list[OrganizationRecord]:
        return sorted(self.organizations.values(), key=lambda org: org.name)

    def create_organization(self, name: str, link: Optional[str] = None) -> int:
        org_id = self._new_id()
        self.organizations[org_id] = OrganizationRecord(id=org_id, name=name, link=link)
        return org_id

    def list_opportunities(self, organization_id: int) -> list[str]:
        return [text for org_id, text in self.opportunities if org_id == organization_id]

    def add_opportunity(self, organization_id: int, opportunity: str) -> None:
        if organization_id not in self.organizations:
            raise NotFound(f"Organization {organization_id} does not exist")
        self.opportunities.append((organization_id, opportunity))

    def add_image(
        self,
        url: str,
        organization: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> ImageRecord:
        image_id = self._new_id()
        record = ImageRecord(
            id=image_id, url=url, organization=organization, date=_as_utc(date)
        )
        self.images[image_id] = record
        return record

    def list_images(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[ImageRecord]:
        if start is None and end is None:
            items = sorted(self.images.values(), key=lambda img: img.id, reverse=True)
        else:
            start, end = _as_utc(start), _as_utc(end)
            items = [
                img
                for img in self.images.values()
                if img.date is not None
                and (start is None or img.date >= start)
                and (end is None or img.date < end)
            ]
            items.sort(key=lambda img: (img.date, img.id))
        return items[:limit] if limit else items


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_image_record(self, row: "ImageRow") -> ImageRecord:
        return ImageRecord(
            id=row.id,
            url=row.url,
            organization=row.organization,
            date=_as_utc(row.date),
        )

    def get_password_hash(self) -> Optional[str]:
        with self.Session() as session:
            stmt = select(PasswordRow.password_hash).order_by(PasswordRow.id).limit(1)
            return session.execute(stmt).scalar_one_or_none()

    def set_password_hash(self, password_hash: str) -> None:
        with self.Session() as session:
            row = session.execute(
                select(PasswordRow).order_by(PasswordRow.id).limit(1)
            ).scalar_one_or_none()
            if row:
                row.password_hash = password_hash
            else:
                session.add(PasswordRow(password_hash=password_hash))
            session.commit()

    def list_organizations(self) -> list[OrganizationRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(OrganizationRow).order_by(OrganizationRow.name)
            ).scalars()
            return [
                OrganizationRecord(id=row.id, name=row.name, link=row.link)
                for row in rows
            ]

    def create_organization(self, name: str, link: Optional[str] = None) -> int:
        with self.Session() as session:
            row = OrganizationRow(name=name, link=link)
            session.add(row)
            session.commit()
            session.refresh(row)
            return row.id

    def list_opportunities(self, organization_id: int) -> list[str]:
        with self.Session() as session:
            stmt = (
                select(OpportunityRow.opportunity)
                .where(OpportunityRow.organization_id == organization_id)
                .order_by(OpportunityRow.id)
            )
            return list(session.execute(stmt).scalars())

    def add_opportunity(self, organization_id: int, opportunity: str) -> None:
        with self.Session() as session:
            if session.get(OrganizationRow, organization_id) is None:
                raise NotFound(f"Organization {organization_id} does not exist")
            session.add(
                OpportunityRow(organization_id=organization_id, opportunity=opportunity)
            )
            session.commit()

    def add_image(
        self,
        url: str,
        organization: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> ImageRecord:
        with self.Session() as session:
            row = ImageRow(url=url, organization=organization, date=_as_naive_utc(date))
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_image_record(row)

    def list_images(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[ImageRecord]:
        with self.Session() as session:
            stmt = select(ImageRow)
            if start is None and end is None:
                stmt = stmt.order_by(ImageRow.id.desc())
            else:
                stmt = stmt.where(ImageRow.date.is_not(None))
                if start is not None:
                    stmt = stmt.where(ImageRow.date >= _as_naive_utc(start))
                if end is not None:
                    stmt = stmt.where(ImageRow.date < _as_naive_utc(end))
                stmt = stmt.order_by(ImageRow.date.asc(), ImageRow.id.asc())
            if limit:
                stmt = stmt.limit(limit)
            return [self._to_image_record(row) for row in session.execute(stmt).scalars()]


Base = declarative_base()


class OrganizationRow(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    link = Column(String, nullable=True)


class OpportunityRow(Base):
    __tablename__ = "opportunities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )
    opportunity = Column(Text, nullable=False)


class PasswordRow(Base):
    __tablename__ = "password"

    id = Column(Integer, primary_key=True, autoincrement=True)
    password_hash = Column(String, nullable=False)


class ImageRow(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    organization = Column(String, nullable=True)
    # Stored as naive UTC.
    date = Column(DateTime, nullable=True, index=True)
