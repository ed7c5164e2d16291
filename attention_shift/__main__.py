import sys

from attention_shift.run_pipeline import main

sys.exit(main())
