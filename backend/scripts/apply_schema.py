import asyncio
import os
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from running_diary.infra.postgres import close_pool, get_pool

SCHEMA_PATH = BACKEND_ROOT / "schema.sql"


async def apply_schema(path: Path = SCHEMA_PATH) -> None:
    sql = path.read_text(encoding="utf-8")
    print(f"Applying schema: {path.name}")
    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
    finally:
        await close_pool()
    print("Schema applied successfully.")


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else SCHEMA_PATH
    if not os.path.exists(target):
        print(f"Schema file not found: {target}")
        sys.exit(1)
    asyncio.run(apply_schema(target))
