http200 = 200
http400 = 400
http401 = 401
http403 = 403
http404 = 404
http405 = 405
http409 = 409
http500 = 500
http502 = 502
