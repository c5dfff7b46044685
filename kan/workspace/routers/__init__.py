"""HTTP routers for the workspace API, one module per resource."""

from . import boards, cards, checklists, labels, lists, pages, workspaces

__all__ = ["ROUTERS"]

ROUTERS = (
    workspaces.router,
    boards.router,
    lists.router,
    labels.router,
    cards.router,
    checklists.router,
    pages.router,
)
