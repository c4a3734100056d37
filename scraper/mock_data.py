"""Canned MySideline responses used when mock mode is enabled."""

MOCK_SEARCH_HTML = """
<html>
    <body>
        <div class="el-card is-always-shadow" id="clubsearch_1">
            <img alt="Masters Rugby League Carnival (15/11/2027)"
                 src="https://cdn.mysideline.com.au/logos/redcliffe.png">
        </div>
        <div class="el-card is-always-shadow" id="clubsearch_2">
            <img alt="NSW Masters Championship - 20th March 2028"
                 data-url="https://cdn.mysideline.com.au/logos/nsw-masters.png"
                 src="/placeholder.png">
        </div>
    </body>
</html>
"""

MOCK_API_RESPONSE = {
    'data': [
        {
            '_id': '64b7f0c2a1d3e40012345678',
            'name': 'Masters Rugby League Carnival (15/11/2027)',
            'ageLvl': 'Masters',
            'regoOpen': True,
            'orgtree': {'region': {'name': 'NRL Masters QLD'}},
            'association': {'name': 'QLD Masters Rugby League'},
            'competition': {'name': 'Masters Carnival Series'},
            'club': {'name': 'Redcliffe Masters'},
            'venue': {
                'name': 'Redcliffe Recreation Reserve',
                'address': {
                    'formatted': 'Redcliffe Recreation Reserve, Redcliffe QLD 4020',
                    'addressLine1': '1 Ashmole Road',
                    'suburb': 'Redcliffe',
                    'postcode': '4020',
                    'state': 'QLD',
                    'country': 'Australia',
                    'lat': -27.2303,
                    'lng': 153.1125,
                },
            },
            'contact': {
                'name': 'Jane Citizen',
                'number': '0400 000 000',
                'email': 'Carnivals@RedcliffeMasters.com.au',
            },
            'meta': {
                'website': 'https://redcliffemasters.com.au',
                'facebook': 'https://facebook.com/redcliffemasters',
            },
            'finderDetails': {'description': 'Annual Masters carnival, 9am start.'},
        },
        {
            '_id': '64b7f0c2a1d3e40087654321',
            'name': 'NSW Masters Championship - 20th March 2028',
            'ageLvl': 'Masters',
            'regoOpen': False,
            'association': {'name': 'NRL Masters NSW'},
            'contact': {
                'name': 'John Smith',
                'email': 'nsw@mastersrugbyleague.com.au',
                'address': {
                    'formatted': 'Accor Stadium, Sydney Olympic Park NSW 2127',
                    'state': 'NSW',
                    'postcode': '2127',
                },
            },
        },
        {
            '_id': '64b7f0c2a1d3e400aaaabbbb',
            'name': 'Masters Touch Footy Gala Day',
            'ageLvl': 'Masters',
            'association': {'name': 'Touch Football Australia'},
        },
    ]
}
