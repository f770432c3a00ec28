from soustack_mcp.cli import main

raise SystemExit(main())
