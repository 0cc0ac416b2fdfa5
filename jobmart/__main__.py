from jobmart.cli import main

raise SystemExit(main())
