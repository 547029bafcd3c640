import sys

from jobsupervisor.main import main

sys.exit(main())
