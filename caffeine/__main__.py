from caffeine.cli import main

raise SystemExit(main())
