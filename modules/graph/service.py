from core.results import OperationResult, operation
from modules.graph.assembler import load_graph


@operation("Failed to load data")
async def get_graph(ctx) -> OperationResult:
    graph = await load_graph(ctx)
    # an empty graph also stands for a failed load
    message = "No data loaded" if graph.is_empty() else "Data loaded"
    return OperationResult.ok(message, graph.model_dump(mode="json"))
