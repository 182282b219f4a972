"""ledgerdb reducers module - per-table event handlers."""

from ledgerdb.reducers.registry import (
    CreatorFn,
    CreatorReducer,
    Reducer,
    ReducerRegistry,
    TableReducers,
    UpdaterFn,
    UpdaterReducer,
    merge_patch,
)

__all__ = [
    "CreatorFn",
    "CreatorReducer",
    "Reducer",
    "ReducerRegistry",
    "TableReducers",
    "UpdaterFn",
    "UpdaterReducer",
    "merge_patch",
]
