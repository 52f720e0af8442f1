from aishell.cli import main

raise SystemExit(main())
