class ScanApiError(Exception):
    """The scan service answered, but not with the data that was asked for"""


class ScanStartError(ScanApiError):
    """The start mutation did not hand back a scan id"""
