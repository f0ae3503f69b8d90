"""
Compiled-in role tables for the Draco league portal.

Each entry declares the stable role identifier, its display name, the kind
of context it is granted in, the pre-flattened set of roles it implies and
its own permission list. Permission lists are declared per role and are not
inherited through ``implies``.
"""

WILDCARD_PERMISSION = '*'

ROLE_IDS = {
    'Administrator': '93DAC465-4C64-4422-B444-3CE79C549DF1',
    'AccountAdmin': '5F00A9E0-F42E-49B4-ABD9-B2DCEDD2BB8A',
    'AccountPhotoAdmin': 'A87EA9A3-47E2-49D1-9E1E-C35358D1A677',
    'PhotoAdmin': '05BECBB6-4E53-4C4F-8B2C-D0E4C2A3A5A6',
    'LeagueAdmin': '672DDF06-21AC-4D7C-B025-9319CC69281A',
    'TeamAdmin': '777D771B-1CBA-4126-B8F3-DD7F3478D40E',
    'TeamPhotoAdmin': '55FD3262-343F-4000-9561-6BB7F658DEB7',
}

DEFAULT_ROLES = {
    'Administrator': {
        'display_name': 'Administrator',
        'context': 'global',
        'implies': [
            'AccountAdmin', 'AccountPhotoAdmin', 'PhotoAdmin',
            'LeagueAdmin', 'TeamAdmin', 'TeamPhotoAdmin',
        ],
        'permissions': [WILDCARD_PERMISSION],
    },
    'AccountAdmin': {
        'display_name': 'Account Administrator',
        'context': 'account',
        'implies': [
            'AccountPhotoAdmin', 'PhotoAdmin',
            'LeagueAdmin', 'TeamAdmin', 'TeamPhotoAdmin',
        ],
        'permissions': [
            'account.manage', 'account.settings.manage',
            'account.users.manage', 'account.roles.manage',
            'account.communications.send',
            'season.manage', 'league.manage', 'schedule.manage',
            'team.manage', 'team.roster.manage', 'team.stats.manage',
            'sponsors.manage', 'photos.manage',
        ],
    },
    'AccountPhotoAdmin': {
        'display_name': 'Account Photo Administrator',
        'context': 'account',
        'implies': ['TeamPhotoAdmin'],
        'permissions': [
            'account.photos.manage', 'team.photos.manage',
        ],
    },
    'PhotoAdmin': {
        'display_name': 'Photo Administrator',
        'context': 'account',
        'implies': [],
        'permissions': ['account.photos.manage'],
    },
    'LeagueAdmin': {
        'display_name': 'League Administrator',
        'context': 'league',
        'implies': ['TeamAdmin'],
        'permissions': [
            'league.manage', 'league.teams.manage', 'schedule.manage',
            'team.manage',
        ],
    },
    'TeamAdmin': {
        'display_name': 'Team Administrator',
        'context': 'team',
        'implies': [],
        'permissions': [
            'team.manage', 'team.roster.manage', 'team.stats.manage',
            'team.communications.send', 'team.sponsors.manage',
        ],
    },
    'TeamPhotoAdmin': {
        'display_name': 'Team Photo Administrator',
        'context': 'team',
        'implies': [],
        'permissions': ['team.photos.manage'],
    },
}
