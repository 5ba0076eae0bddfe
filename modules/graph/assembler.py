"""Builds the in-memory entity graph from the flat collections.

All collections are read in parallel, each child collection is indexed by
its parent id in one pass and attached, so assembly is linear in the number
of records. Every parent gets a list for each child relation, empty when it
has no children. If any read fails the whole graph comes back empty.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List

from core.collections import Collections
from modules.graph.schemas import Graph
from modules.materials.schemas import AluDoorItem, GlassItem, ProductMaterial
from modules.offers.schemas import Offer, OfferExtra, OfferProduct
from modules.orders.schemas import Order, OrderItem
from modules.products.schemas import Product
from modules.projects.schemas import Project
from modules.suppliers.schemas import Supplier
from modules.tasks.schemas import Task
from modules.work_logs.schemas import WorkLog
from modules.work_orders.schemas import WorkOrder, WorkOrderItem
from modules.workers.schemas import Worker

logger = logging.getLogger(__name__)

GRAPH_COLLECTIONS = (
    Collections.PROJECTS,
    Collections.PRODUCTS,
    Collections.PRODUCT_MATERIALS,
    Collections.GLASS_ITEMS,
    Collections.ALU_DOOR_ITEMS,
    Collections.OFFERS,
    Collections.OFFER_PRODUCTS,
    Collections.OFFER_EXTRAS,
    Collections.ORDERS,
    Collections.ORDER_ITEMS,
    Collections.SUPPLIERS,
    Collections.WORKERS,
    Collections.WORK_ORDERS,
    Collections.WORK_ORDER_ITEMS,
    Collections.WORK_LOGS,
    Collections.TASKS,
)


def index_by(records: Iterable[Any], field: str) -> Dict[str, List[Any]]:
    index: Dict[str, List[Any]] = {}
    for record in records:
        index.setdefault(getattr(record, field), []).append(record)
    return index


def _parse(model, records: Iterable[Dict[str, Any]]) -> List[Any]:
    return [model.model_validate(r) for r in records]


def assemble(raw: Dict[str, List[Dict[str, Any]]]) -> Graph:
    """Attach children to parents. ``raw`` maps collection name to its records."""

    def rows(collection: str) -> List[Dict[str, Any]]:
        return raw.get(collection) or []

    glass = index_by(_parse(GlassItem, rows(Collections.GLASS_ITEMS)), "product_material_id")
    doors = index_by(_parse(AluDoorItem, rows(Collections.ALU_DOOR_ITEMS)), "product_material_id")
    materials = _parse(ProductMaterial, rows(Collections.PRODUCT_MATERIALS))
    for material in materials:
        material.glass_items = glass.get(material.id, [])
        material.alu_door_items = doors.get(material.id, [])

    materials_by_product = index_by(materials, "product_id")
    products = _parse(Product, rows(Collections.PRODUCTS))
    for product in products:
        product.materials = materials_by_product.get(product.id, [])

    extras = index_by(_parse(OfferExtra, rows(Collections.OFFER_EXTRAS)), "offer_product_id")
    offer_products = _parse(OfferProduct, rows(Collections.OFFER_PRODUCTS))
    for offer_product in offer_products:
        offer_product.extras = extras.get(offer_product.id, [])

    offer_products_by_offer = index_by(offer_products, "offer_id")
    offers = _parse(Offer, rows(Collections.OFFERS))
    for offer in offers:
        offer.products = offer_products_by_offer.get(offer.id, [])

    products_by_project = index_by(products, "project_id")
    offers_by_project = index_by(offers, "project_id")
    projects = _parse(Project, rows(Collections.PROJECTS))
    clients = {}
    for project in projects:
        project.products = products_by_project.get(project.id, [])
        project.offers = offers_by_project.get(project.id, [])
        clients[project.id] = project.client_name
    for offer in offers:
        offer.client_name = clients.get(offer.project_id)

    items_by_order = index_by(_parse(OrderItem, rows(Collections.ORDER_ITEMS)), "order_id")
    orders = _parse(Order, rows(Collections.ORDERS))
    for order in orders:
        order.items = items_by_order.get(order.id, [])

    items_by_work_order = index_by(_parse(WorkOrderItem, rows(Collections.WORK_ORDER_ITEMS)), "work_order_id")
    work_orders = _parse(WorkOrder, rows(Collections.WORK_ORDERS))
    for work_order in work_orders:
        work_order.items = items_by_work_order.get(work_order.id, [])

    return Graph(
        projects=projects,
        products=products,
        offers=offers,
        orders=orders,
        work_orders=work_orders,
        suppliers=_parse(Supplier, rows(Collections.SUPPLIERS)),
        workers=_parse(Worker, rows(Collections.WORKERS)),
        work_logs=_parse(WorkLog, rows(Collections.WORK_LOGS)),
        tasks=_parse(Task, rows(Collections.TASKS)),
    )


async def load_graph(ctx) -> Graph:
    try:
        results = await asyncio.gather(*(ctx.query(name) for name in GRAPH_COLLECTIONS))
        return assemble(dict(zip(GRAPH_COLLECTIONS, results)))
    except Exception:
        logger.exception("Graph assembly failed, returning an empty graph", extra={"tenant_id": ctx.tenant_id})
        return Graph.empty()
