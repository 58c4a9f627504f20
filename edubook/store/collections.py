USERS = 'users'
APPOINTMENTS = 'appointments'
MESSAGES = 'messages'
IDENTITIES = 'identities'
SESSIONS = 'sessions'
