from relnote_tickets.cli import main

raise SystemExit(main())
