"""Collection names used by the document store."""


class Collections:
    PROJECTS = "projects"
    PRODUCTS = "products"
    PRODUCT_MATERIALS = "product_materials"
    GLASS_ITEMS = "glass_items"
    ALU_DOOR_ITEMS = "alu_door_items"
    OFFERS = "offers"
    OFFER_PRODUCTS = "offer_products"
    OFFER_EXTRAS = "offer_extras"
    ORDERS = "orders"
    ORDER_ITEMS = "order_items"
    SUPPLIERS = "suppliers"
    WORKERS = "workers"
    WORK_ORDERS = "work_orders"
    WORK_ORDER_ITEMS = "work_order_items"
    WORK_LOGS = "work_logs"
    TASKS = "tasks"
    CASCADE_JOURNAL = "cascade_journal"
