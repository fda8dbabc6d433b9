"""Section Attendance package.

Daily attendance for grade sections: roster views, bulk marking, statistics
and a read-through cache kept coherent with writes. Feature modules follow a
thin Flask controller layer over service/repository layers.
"""
