"""Allow ``python -m open_meteo_mcp <transport>``."""

from open_meteo_mcp.main import main

if __name__ == "__main__":
    main()
