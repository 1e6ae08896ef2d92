import logging
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db.session import get_session
from ..errors import CartError, PersistenceFailure, Unauthenticated, ValidationError
from ..models.cart import Cart
from ..models.cart_item import CartItem
from ..models.product_variant import ProductVariant
from ..utils.dto import to_cart_dto, to_detailed_item_dto, to_light_item_dto
from ..utils.validators import ensure_identifier, ensure_int, ensure_positive_int
from .catalog_service import CatalogService
from .logging import log_event


logger = logging.getLogger(__name__)

CART_PAGE_PATH = "/cart"

_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class CartService:
    """Authoritative cart operations backed by DB.

    Every method takes the caller's resolved ``user_id`` (None for guests).
    Writes without an identity raise ``Unauthenticated``; reads answer with
    an empty result instead. Persistence faults are logged and swallowed on
    reads, wrapped in ``PersistenceFailure`` and raised on writes.
    """

    def __init__(self, session_factory=get_session, catalog: Optional[CatalogService] = None, page_cache=None):
        self._session_factory = session_factory
        self._catalog = catalog or CatalogService(session_factory)
        self._page_cache = page_cache

    # -- reads -----------------------------------------------------------

    def get_or_create_cart(self, *, user_id: Optional[str]) -> Optional[Dict]:
        """Return the caller's cart with light items, creating it if absent."""
        if not user_id:
            return None
        try:
            with self._session_factory() as session:
                cart = self._find_cart(session, user_id) or self._ensure_cart(session, user_id)
                items = [to_light_item_dto(it) for it in self._cart_items(session, cart.id)]
                return to_cart_dto(cart, items)
        except SQLAlchemyError:
            logger.exception("get_or_create_cart failed for user %s", user_id)
            log_event("error", "cart.read_failed", op="get_or_create_cart", user_id=user_id)
            return None

    def get_cart_details(self, *, user_id: Optional[str]) -> Optional[Dict]:
        """Same as ``get_or_create_cart`` with catalog fields joined per line."""
        if not user_id:
            return None
        try:
            with self._session_factory() as session:
                cart = self._find_cart(session, user_id) or self._ensure_cart(session, user_id)
                rows = self._cart_items(session, cart.id)
                variants = self._catalog.get_variants(
                    [r.product_variant_id for r in rows], session=session
                )
                items = []
                for row in rows:
                    variant = variants.get(row.product_variant_id)
                    if variant is None:
                        items.append(to_light_item_dto(row))
                    else:
                        items.append(to_detailed_item_dto(row, variant))
                return to_cart_dto(cart, items)
        except SQLAlchemyError:
            logger.exception("get_cart_details failed for user %s", user_id)
            log_event("error", "cart.read_failed", op="get_cart_details", user_id=user_id)
            return None

    def get_cart_item_count(self, *, user_id: Optional[str]) -> int:
        if not user_id:
            return 0
        try:
            with self._session_factory() as session:
                total = (
                    session.query(func.coalesce(func.sum(CartItem.quantity), 0))
                    .join(Cart, Cart.id == CartItem.cart_id)
                    .filter(Cart.user_id == user_id)
                    .scalar()
                )
                return int(total or 0)
        except SQLAlchemyError:
            logger.exception("get_cart_item_count failed for user %s", user_id)
            log_event("error", "cart.read_failed", op="get_cart_item_count", user_id=user_id)
            return 0

    # -- writes ----------------------------------------------------------

    def add_to_cart(self, *, user_id: Optional[str], variant_id: str, quantity: int = 1) -> Dict:
        uid = self._require_identity(user_id, "add items to cart")
        vid = ensure_identifier(variant_id, "variant_id")
        qnty = ensure_positive_int(quantity, "quantity")
        try:
            with self._session_factory() as session:
                if not self._variant_exists(session, vid):
                    raise ValidationError("product variant not found or inactive", context={"variant_id": vid})
                cart = self._ensure_cart(session, uid)
                new_q = self._merge_quantity(session, cart.id, vid, qnty)
        except SQLAlchemyError as exc:
            raise self._persistence_failure("add_to_cart", uid, exc) from exc
        log_event("info", "cart.item_added", user_id=uid, variant_id=vid, quantity=qnty, line_quantity=new_q)
        self._invalidate()
        return {"success": True, "variant_id": vid, "quantity": new_q}

    def update_cart_item_quantity(self, *, user_id: Optional[str], item_id: str, quantity: int) -> Dict:
        """Set a line's quantity to exactly ``quantity``; <= 0 removes it."""
        uid = self._require_identity(user_id, "update cart")
        iid = ensure_identifier(item_id, "item_id")
        qnty = ensure_int(quantity, "quantity")
        if qnty <= 0:
            return self.remove_from_cart(user_id=uid, item_id=iid)
        try:
            with self._session_factory() as session:
                item = self._owned_item(session, uid, iid)
                if item is None:
                    log_event("warning", "cart.item_missing", op="update", user_id=uid, item_id=iid)
                    return {"success": False, "reason": "not_found"}
                item.quantity = qnty
                session.flush()
        except SQLAlchemyError as exc:
            raise self._persistence_failure("update_cart_item_quantity", uid, exc) from exc
        log_event("info", "cart.item_updated", user_id=uid, item_id=iid, quantity=qnty)
        self._invalidate()
        return {"success": True, "item_id": iid, "quantity": qnty}

    def remove_from_cart(self, *, user_id: Optional[str], item_id: str) -> Dict:
        uid = self._require_identity(user_id, "remove items from cart")
        iid = ensure_identifier(item_id, "item_id")
        try:
            with self._session_factory() as session:
                item = self._owned_item(session, uid, iid)
                if item is not None:
                    session.delete(item)
                    session.flush()
        except SQLAlchemyError as exc:
            raise self._persistence_failure("remove_from_cart", uid, exc) from exc
        removed = item is not None
        log_event("info", "cart.item_removed", user_id=uid, item_id=iid, removed=removed)
        self._invalidate()
        return {"success": True, "item_id": iid, "removed": removed}

    def clear_cart(self, *, user_id: Optional[str]) -> Dict:
        uid = self._require_identity(user_id, "clear cart")
        try:
            with self._session_factory() as session:
                cart = self._find_cart(session, uid)
                removed = 0
                if cart is not None:
                    removed = (
                        session.query(CartItem)
                        .filter(CartItem.cart_id == cart.id)
                        .delete(synchronize_session=False)
                    )
        except SQLAlchemyError as exc:
            raise self._persistence_failure("clear_cart", uid, exc) from exc
        log_event("info", "cart.cleared", user_id=uid, removed=removed)
        self._invalidate()
        return {"success": True, "removed": removed}

    def migrate_guest_cart(self, *, user_id: Optional[str], items: Iterable[Dict]) -> Dict:
        """Merge guest (variant_id, quantity) pairs into the user's cart.

        Runs in one transaction with the same accumulation rule as
        ``add_to_cart``. Unknown variants are skipped and reported.
        """
        pairs = list(items or [])
        if not user_id or not pairs:
            return {"success": False}
        try:
            parsed = self._parse_guest_items(pairs)
            with self._session_factory() as session:
                cart = self._ensure_cart(session, user_id)
                migrated, skipped = 0, []
                for vid, qnty in parsed:
                    if not self._variant_exists(session, vid):
                        skipped.append(vid)
                        continue
                    self._merge_quantity(session, cart.id, vid, qnty)
                    migrated += 1
        except (CartError, SQLAlchemyError) as exc:
            logger.warning("migrate_guest_cart failed for user %s: %s", user_id, exc)
            log_event("error", "cart.migrate_failed", user_id=user_id, error=str(exc))
            return {"success": False, "error": str(exc)}
        log_event("info", "cart.migrated", user_id=user_id, migrated=migrated, skipped=len(skipped))
        self._invalidate()
        return {"success": True, "migrated": migrated, "skipped": skipped}

    # -- helpers ---------------------------------------------------------

    @staticmethod
    def _require_identity(user_id: Optional[str], action: str) -> str:
        if not user_id:
            raise Unauthenticated(f"User must be authenticated to {action}")
        return str(user_id)

    @staticmethod
    def _parse_guest_items(pairs: List[Dict]) -> List[Tuple[str, int]]:
        parsed = []
        for entry in pairs:
            if not isinstance(entry, dict):
                raise ValidationError("guest cart entries must be objects")
            parsed.append(
                (
                    ensure_identifier(entry.get("variant_id"), "variant_id"),
                    ensure_positive_int(entry.get("quantity", 1), "quantity"),
                )
            )
        return parsed

    @staticmethod
    def _find_cart(session, user_id: str) -> Optional[Cart]:
        return session.query(Cart).filter(Cart.user_id == user_id).first()

    @staticmethod
    def _cart_items(session, cart_id: str) -> List[CartItem]:
        return (
            session.query(CartItem)
            .filter(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at, CartItem.id)
            .all()
        )

    @staticmethod
    def _variant_exists(session, variant_id: str) -> bool:
        return (
            session.query(ProductVariant.id)
            .filter(ProductVariant.id == variant_id, ProductVariant.is_active.is_(True))
            .first()
            is not None
        )

    @staticmethod
    def _owned_item(session, user_id: str, item_id: str) -> Optional[CartItem]:
        return (
            session.query(CartItem)
            .join(Cart, Cart.id == CartItem.cart_id)
            .filter(CartItem.id == item_id, Cart.user_id == user_id)
            .first()
        )

    def _ensure_cart(self, session, user_id: str) -> Cart:
        """Insert-or-ignore on the unique user_id, then read the winner."""
        insert = _UPSERT_DIALECTS.get(session.get_bind().dialect.name)
        if insert is not None:
            stmt = (
                insert(Cart.__table__)
                .values(id=str(uuid4()), user_id=user_id)
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            created = session.execute(stmt).rowcount == 1
        else:
            created = True
            try:
                with session.begin_nested():
                    session.add(Cart(id=str(uuid4()), user_id=user_id))
            except IntegrityError:
                created = False
        if created:
            log_event("info", "cart.created", user_id=user_id)
        return session.query(Cart).filter(Cart.user_id == user_id).one()

    def _merge_quantity(self, session, cart_id: str, variant_id: str, quantity: int) -> int:
        """Add ``quantity`` to the (cart, variant) line, inserting it if absent."""
        table = CartItem.__table__
        insert = _UPSERT_DIALECTS.get(session.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(table).values(
                id=str(uuid4()),
                cart_id=cart_id,
                product_variant_id=variant_id,
                quantity=quantity,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["cart_id", "product_variant_id"],
                set_={"quantity": table.c.quantity + stmt.excluded.quantity},
            )
            session.execute(stmt)
        else:
            try:
                with session.begin_nested():
                    session.add(
                        CartItem(id=str(uuid4()), cart_id=cart_id, product_variant_id=variant_id, quantity=quantity)
                    )
            except IntegrityError:
                session.query(CartItem).filter(
                    CartItem.cart_id == cart_id, CartItem.product_variant_id == variant_id
                ).update({CartItem.quantity: CartItem.quantity + quantity}, synchronize_session=False)
        return (
            session.query(CartItem.quantity)
            .filter(CartItem.cart_id == cart_id, CartItem.product_variant_id == variant_id)
            .scalar()
        )

    @staticmethod
    def _persistence_failure(op: str, user_id: str, exc: Exception) -> PersistenceFailure:
        logger.exception("%s failed for user %s", op, user_id)
        log_event("error", "cart.write_failed", op=op, user_id=user_id, error=str(exc))
        return PersistenceFailure(f"{op} failed", context={"op": op})

    def _invalidate(self) -> None:
        if self._page_cache is not None:
            self._page_cache.invalidate(CART_PAGE_PATH)
