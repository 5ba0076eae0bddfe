import logging
from datetime import timedelta
from typing import Dict, Iterable, List

from core.collections import Collections
from core.errors import ValidationAppException
from core.identifiers import OFFER_PREFIX, document_number, new_id
from core.results import OperationResult, operation
from core.store import where
from modules.aggregates.service import line_total
from modules.offers import lifecycle
from modules.offers.lifecycle import OFFER_TRANSITIONS
from modules.offers.schemas import Offer, OfferCreate, OfferExtra, OfferProduct, OfferStatus
from modules.projects import lifecycle as project_lifecycle
from modules.projects.schemas import ProjectStatus

logger = logging.getLogger(__name__)

OFFER_VALIDITY = timedelta(days=14)


async def _build_products(ctx, offer_id: str, data: OfferCreate) -> List[OfferProduct]:
    product_ids = [p.product_id for p in data.products]
    stored: Dict[str, Dict] = {
        p["id"]: p for p in await ctx.query(Collections.PRODUCTS, where("id", "in", product_ids))
    }
    offered = []
    for entry in data.products:
        product = stored.get(entry.product_id)
        if product is None:
            raise ValidationAppException(f"Product {entry.product_id} not found")
        if product.get("project_id") != data.project_id:
            raise ValidationAppException(f"Product {product.get('name')} belongs to another project")

        offer_product_id = new_id()
        extras = [
            OfferExtra(
                id=new_id(),
                offer_product_id=offer_product_id,
                total=line_total(extra.quantity, extra.unit_price),
                **extra.model_dump(),
            )
            for extra in entry.extras
        ]
        cost = product.get("material_cost") or 0.0
        price = lifecycle.selling_price(cost, entry.margin, entry.margin_type, sum(e.total for e in extras))
        offered.append(
            OfferProduct(
                id=offer_product_id,
                offer_id=offer_id,
                product_id=entry.product_id,
                product_name=product.get("name", ""),
                quantity=entry.quantity,
                included=entry.included,
                material_cost=cost,
                margin=entry.margin,
                margin_type=entry.margin_type,
                selling_price=price,
                total_price=line_total(entry.quantity, price),
                extras=extras,
            )
        )
    return offered


@operation("Failed to create offer")
async def create_offer(ctx, data: OfferCreate) -> OperationResult:
    await ctx.require(Collections.PROJECTS, data.project_id, "Project not found")
    if not any(p.included for p in data.products):
        raise ValidationAppException("Select at least one product")

    offer_id = new_id()
    products = await _build_products(ctx, offer_id, data)
    subtotal = lifecycle.offer_subtotal(products)
    offer = Offer(
        id=offer_id,
        project_id=data.project_id,
        offer_number=document_number(OFFER_PREFIX, ctx.today()),
        created_date=ctx.timestamp(),
        valid_until=data.valid_until or (ctx.now() + OFFER_VALIDITY).isoformat(),
        transport_cost=data.transport_cost,
        subtotal=subtotal,
        total=subtotal + data.transport_cost,
        notes=data.notes,
    )

    record = await ctx.add(Collections.OFFERS, offer.to_record())
    for product in products:
        await ctx.add(Collections.OFFER_PRODUCTS, product.to_record())
        for extra in product.extras:
            await ctx.add(Collections.OFFER_EXTRAS, extra.to_record())
    logger.info("Created offer %s", offer.offer_number, extra={"tenant_id": ctx.tenant_id})
    return OperationResult.ok("Offer created", record, status_code=201)


@operation("Failed to update offer status")
async def update_offer_status(ctx, offer_id: str, status: OfferStatus) -> OperationResult:
    offer = await ctx.require(Collections.OFFERS, offer_id, "Offer not found")
    status = OfferStatus(status)
    OFFER_TRANSITIONS.apply(offer.get("status"), status)

    project = await ctx.get(Collections.PROJECTS, offer["project_id"])
    siblings = [
        Offer.model_validate(o)
        for o in await ctx.query(Collections.OFFERS, where("project_id", "==", offer["project_id"]))
    ]

    # the offer itself is written last; until then a retry replays the whole cascade
    if status == OfferStatus.ACCEPTED:
        for sibling in siblings:
            if sibling.id != offer_id and sibling.status in lifecycle.SUPERSEDED_ON_ACCEPT:
                await ctx.update(Collections.OFFERS, sibling.id, {"status": OfferStatus.REVISED.value})

    if project is not None:
        current = ProjectStatus(project.get("status", ProjectStatus.DRAFT))
        target = project_lifecycle.status_after_offer_change(current, siblings, offer_id, status)
        if target != current:
            await ctx.update(Collections.PROJECTS, project["id"], {"status": ProjectStatus(target).value})
            logger.info(
                "Project %s %s -> %s after offer %s",
                project["id"],
                current.value,
                ProjectStatus(target).value,
                status.value,
                extra={"tenant_id": ctx.tenant_id},
            )

    changes = {"status": status.value}
    if status == OfferStatus.ACCEPTED:
        changes["accepted_date"] = ctx.timestamp()
    record = await ctx.update(Collections.OFFERS, offer_id, changes)
    return OperationResult.ok("Offer status updated", record)


async def delete_offer_records(ctx, offer_ids: Iterable[str]) -> int:
    offer_ids = list(offer_ids)
    if not offer_ids:
        return 0
    products = await ctx.query(Collections.OFFER_PRODUCTS, where("offer_id", "in", offer_ids))
    product_ids = [p["id"] for p in products]
    if product_ids:
        extras = await ctx.query(Collections.OFFER_EXTRAS, where("offer_product_id", "in", product_ids))
        await ctx.batch_delete(Collections.OFFER_EXTRAS, [e["id"] for e in extras])
    await ctx.batch_delete(Collections.OFFER_PRODUCTS, product_ids)
    return await ctx.batch_delete(Collections.OFFERS, offer_ids)


@operation("Failed to delete offer")
async def delete_offer(ctx, offer_id: str) -> OperationResult:
    await ctx.require(Collections.OFFERS, offer_id, "Offer not found")
    await delete_offer_records(ctx, [offer_id])
    return OperationResult.ok("Offer deleted")


@operation("Failed to load offer")
async def get_offer(ctx, offer_id: str) -> OperationResult:
    offer = await ctx.require(Collections.OFFERS, offer_id, "Offer not found")
    products = await ctx.query(Collections.OFFER_PRODUCTS, where("offer_id", "==", offer_id))
    extras = await ctx.query(
        Collections.OFFER_EXTRAS, where("offer_product_id", "in", [p["id"] for p in products])
    )
    by_product: Dict[str, List[Dict]] = {p["id"]: [] for p in products}
    for extra in extras:
        by_product.setdefault(extra["offer_product_id"], []).append(extra)
    offer["products"] = [{**p, "extras": by_product[p["id"]]} for p in products]
    return OperationResult.ok("Offer loaded", offer)
