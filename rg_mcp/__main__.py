from rg_mcp.server import main

main()
