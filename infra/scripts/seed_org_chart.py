from __future__ import annotations

import logging

from app.services.seed_service import seed_org_chart


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    ids_by_key = seed_org_chart()
    for key, node_id in ids_by_key.items():
        print(f"{key}: {node_id}")


if __name__ == "__main__":
    main()
