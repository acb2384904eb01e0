from rust_bundler.cli import main

raise SystemExit(main())
