# Written by Sultan Qasim Khan
# Copyright (c) 2024, NCC Group plc
# Released as open source under GPLv3

import os
import yaml

ad_types = {}

def an_relpath(fname):
    return os.path.join(os.path.dirname(__file__), "assigned_numbers", fname)

with open(an_relpath("ad_types.yaml"), 'rb') as f:
    y = yaml.safe_load(f)["ad_types"]
    for t in y:
        ad_types[t["value"]] = t["name"]
