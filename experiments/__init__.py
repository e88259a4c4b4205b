"""
Experiment scripts for ID card scanning.

1. exp_scan_directory.py - Batch scan of a directory of card photos with
   optional name verification and variant dumps

Running Experiments:
-------------------
From the project root:

    python experiments/exp_scan_directory.py --data_dir data/cards
    python experiments/exp_scan_directory.py --data_dir data/cards \
        --names_csv data/cards/names.csv --num_workers 4 --dump_variants
"""
