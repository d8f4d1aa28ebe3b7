from functools import lru_cache

from fastapi import Depends, HTTPException

from crm_tables.services.entities import EntityDefinition
from crm_tables.services.table_store import TableStore, UnknownEntityError

@lru_cache(maxsize=1)
def get_table_store() -> TableStore:
    return TableStore()

def get_entity_or_404(entity: str, store: TableStore = Depends(get_table_store)) -> EntityDefinition:
    try:
        return store.entity(entity)
    except UnknownEntityError:
        raise HTTPException(status_code=404, detail=f'Unknown table "{entity}"')
