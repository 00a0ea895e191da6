from dbuz.cli import main

raise SystemExit(main())
