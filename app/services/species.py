from typing import List, Optional
from uuid import UUID
from fastapi import HTTPException, status
from loguru import logger
from sqlmodel import Session, select, col, func, or_

from app.db.schema import HerbSpecies, CollectionEvent, ConservationStatus, User
from app.models.common import Page
from app.models.species import SpeciesCreate, SpeciesUpdate, SpeciesRead, SpeciesAnalytics
from app.services.pagination import paginate


ENDANGERED_STATUSES = (
    ConservationStatus.VULNERABLE,
    ConservationStatus.ENDANGERED,
    ConservationStatus.CRITICALLY_ENDANGERED,
)


class SpeciesService:
    """
    Registry of medicinal herb species.

    Scientific names are unique. A species cannot be deleted while
    collection events reference it.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_species(self, species_id: UUID) -> HerbSpecies:
        species = self.session.get(HerbSpecies, species_id)
        if not species:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Species not found."
            )
        return species

    def _ensure_unique(self, scientific_name: str, exclude_id: Optional[UUID] = None) -> None:
        query = select(HerbSpecies).where(
            func.lower(HerbSpecies.scientific_name) == scientific_name.lower())
        if exclude_id:
            query = query.where(HerbSpecies.id != exclude_id)

        if self.session.exec(query).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Species with scientific name '{scientific_name}' already exists."
            )

    def create_species(self, user: User, data: SpeciesCreate) -> HerbSpecies:
        """
        Registers a species.

        Raises:
            HTTPException(409): If the scientific name is taken (case-insensitive).
        """
        self._ensure_unique(data.scientific_name)

        species = HerbSpecies(**data.model_dump(), created_by_id=user.id)
        self.session.add(species)
        self.session.commit()
        self.session.refresh(species)

        logger.info(f"Species registered: {species.scientific_name} ({species.id})")
        return species

    def list_species(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        conservation_status: Optional[ConservationStatus] = None,
    ) -> Page:
        query = select(HerbSpecies)

        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                func.lower(HerbSpecies.scientific_name).like(pattern),
                func.lower(HerbSpecies.common_name).like(pattern),
            ))
        if conservation_status:
            query = query.where(HerbSpecies.conservation_status == conservation_status)

        query = query.order_by(HerbSpecies.common_name)
        return paginate(self.session, query, page, limit, SpeciesRead)

    def list_endangered(self) -> List[HerbSpecies]:
        return self.session.exec(
            select(HerbSpecies)
            .where(col(HerbSpecies.conservation_status).in_(ENDANGERED_STATUSES))
            .order_by(HerbSpecies.common_name)
        ).all()

    # JSON list columns are filtered in Python so the query stays portable
    # between SQLite and PostgreSQL.
    def list_by_region(self, region: str) -> List[HerbSpecies]:
        needle = region.lower()
        return [
            s for s in self.session.exec(select(HerbSpecies).order_by(HerbSpecies.common_name)).all()
            if any(needle in r.lower() for r in (s.regions or []))
        ]

    def search_by_medicinal_use(self, use: str) -> List[HerbSpecies]:
        needle = use.lower()
        return [
            s for s in self.session.exec(select(HerbSpecies).order_by(HerbSpecies.common_name)).all()
            if any(needle in u.lower() for u in (s.medicinal_uses or []))
        ]

    def update_species(self, species_id: UUID, data: SpeciesUpdate) -> HerbSpecies:
        species = self.get_species(species_id)

        if data.scientific_name is not None and data.scientific_name != species.scientific_name:
            self._ensure_unique(data.scientific_name, exclude_id=species.id)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(species, key, value)

        self.session.add(species)
        self.session.commit()
        self.session.refresh(species)
        return species

    def delete_species(self, species_id: UUID) -> dict:
        """
        Raises:
            HTTPException(404): Species not found.
            HTTPException(409): Collection events still reference the species.
        """
        species = self.get_species(species_id)

        in_use = self.session.exec(
            select(CollectionEvent).where(CollectionEvent.species_id == species_id)
        ).first()
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete a species that has recorded collection events."
            )

        self.session.delete(species)
        self.session.commit()
        return {"message": "Species deleted.", "id": species_id}

    def get_analytics(self) -> SpeciesAnalytics:
        status_rows = self.session.exec(
            select(HerbSpecies.conservation_status, func.count(HerbSpecies.id))
            .group_by(HerbSpecies.conservation_status)
        ).all()
        by_status = {s.value: count for s, count in status_rows}

        collected_rows = self.session.exec(
            select(
                HerbSpecies.id,
                HerbSpecies.common_name,
                func.count(CollectionEvent.id),
                func.coalesce(func.sum(CollectionEvent.quantity), 0),
            )
            .join(CollectionEvent, CollectionEvent.species_id == HerbSpecies.id)
            .group_by(HerbSpecies.id, HerbSpecies.common_name)
            .order_by(func.count(CollectionEvent.id).desc())
            .limit(5)
        ).all()

        return SpeciesAnalytics(
            total_species=sum(by_status.values()),
            by_conservation_status=by_status,
            endangered_count=sum(by_status.get(s.value, 0) for s in ENDANGERED_STATUSES),
            most_collected=[
                {
                    "species_id": str(species_id),
                    "common_name": name,
                    "collection_events": events,
                    "total_quantity": float(total),
                }
                for species_id, name, events, total in collected_rows
            ],
        )
