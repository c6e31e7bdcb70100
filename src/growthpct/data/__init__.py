"""
Bundled LMS growth reference data.

growth_standards.csv is not a published monthly table. Its rows are WHO MGRS
(2006) length/height- and weight-for-age LMS anchors, which are monthly to 12
months and quarterly from 12 to 36 months, with the months between quarterly
anchors linearly interpolated. It ends at 36 months. Load a published table
through ReferenceTableStore(source) for clinical use or for older children.
"""
