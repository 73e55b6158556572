"""Tag-similarity recommendations."""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery.core.config import Settings
from gallery.core.errors import NotFoundError
from gallery.repositories.item_repository import ItemRepository
from gallery.repositories.recommendation_repository import RecommendationRepository
from gallery.services.blacklist import ItemVisibility
from gallery.services.cache import RECOMMENDATIONS, CacheFabric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recommendation:
    id: int
    hash: str
    width: Optional[int]
    height: Optional[int]
    blurhash: Optional[str]
    mime_type: str
    shared_tag_count: int
    similarity: float


class RecommendationService:
    """Jaccard similarity over discriminating tags.

    Tags used by more than ``RECOMMENDATION_TAG_POPULARITY_CEILING`` items
    are left out of both sides of the ratio.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        visibility: ItemVisibility,
        cache: CacheFabric,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.visibility = visibility
        self.cache = cache
        self.limit = settings.RECOMMENDATION_LIMIT
        self.min_similarity = settings.RECOMMENDATION_MIN_SIMILARITY
        self.popularity_ceiling = settings.RECOMMENDATION_TAG_POPULARITY_CEILING

    async def recommend(self, item_id: int, exclude_group_ids: Iterable[int] = ()) -> Tuple[Recommendation, ...]:
        """Most similar items to ``item_id``.

        Raises:
            NotFoundError: Item does not exist
        """
        groups = tuple(sorted(set(exclude_group_ids)))
        return await self.cache.get_or_compute(
            RECOMMENDATIONS, (item_id, groups), lambda: self._recommend(item_id, groups)
        )

    async def _recommend(self, item_id: int, exclude_group_ids: Tuple[int, ...]) -> Tuple[Recommendation, ...]:
        async with self.session_factory() as session:
            if await ItemRepository(session).get_by_id(item_id) is None:
                raise NotFoundError(f"Item {item_id} not found")

            repository = RecommendationRepository(session)
            source_tag_count = await repository.count_discriminating_tags(item_id, self.popularity_ceiling)
            if source_tag_count == 0:
                logger.debug(f"Item {item_id} has no discriminating tags")
                return ()

            rows = await repository.similar_items(
                item_id,
                source_tag_count,
                popularity_ceiling=self.popularity_ceiling,
                min_similarity=self.min_similarity,
                limit=self.limit,
                visible=self.visibility.condition(),
                exclude_group_ids=exclude_group_ids,
            )

        recommendations: List[Recommendation] = [
            Recommendation(
                id=row.id,
                hash=row.hash,
                width=row.width,
                height=row.height,
                blurhash=row.blurhash,
                mime_type=row.mime_type,
                shared_tag_count=int(row.shared),
                similarity=float(row.similarity),
            )
            for row in rows
        ]
        return tuple(recommendations)
