from __future__ import annotations

from valhalla_api.server import main


if __name__ == "__main__":
    main()
