import sys

from substack_posts.cli import main

sys.exit(main())
